"""Build the dependency graph of a run and write it as a Makefile.

The graph is flat: one task per chromosome bin and a single finish task that
depends on all of them, so an executor like make can run every bin in
parallel. Each task writes a completion marker only after its work
succeeded. A task whose marker is missing, or older than any of its
dependencies, needs to run again; make implements this through its normal
target timestamp checks.

Graph generation is deterministic: the same configuration always produces
the same Makefile.
"""
import collections
import os

from varbin import utils
from varbin.distributed.transaction import file_transaction
from varbin.pipeline import region

BinNode = collections.namedtuple("BinNode", ["name", "task", "skip_header"])
FinishNode = collections.namedtuple("FinishNode", ["name", "marker", "deps"])
WorkflowGraph = collections.namedtuple("WorkflowGraph", ["finish", "bins"])

def get_run_config_file(out_dir):
    return os.path.join(region.get_config_dir(out_dir), "run.config.yaml")

def get_finish_marker(out_dir):
    return os.path.join(out_dir, region.COMPLETE_TAG)

def build_graph(config):
    """Create the bin tasks plus the finish task depending on all of them.

    Only the first bin in chromosome then bin order writes the VCF header;
    every other bin is asked to skip it.
    """
    bins = []
    for i, task in enumerate(region.bin_tasks(config)):
        name = "chrom_%s_bin_%s_task" % (task.chrom, task.bin_id)
        bins.append(BinNode(name, task, i > 0))
    finish = FinishNode("finish_task", get_finish_marker(config.derived.outDir),
                        tuple(b.task.marker for b in bins))
    return WorkflowGraph(finish, bins)

# ## Completion markers

def task_is_current(marker, deps=()):
    """A task is done when its marker exists and is not older than any dependency.
    """
    if not os.path.exists(marker):
        return False
    marker_time = os.path.getmtime(marker)
    for dep in deps:
        if not os.path.exists(dep) or os.path.getmtime(dep) > marker_time:
            return False
    return True

def mark_complete(marker):
    """Record successful completion of a task, only call once all outputs are written.
    """
    utils.safe_makedir(os.path.dirname(marker))
    return utils.touch(marker)

def clear_marker(marker):
    utils.remove_safe(marker)

# ## Makefile output

MAKEFILE_HEADER = """\
# This makefile was automatically generated by varbin_workflow.py configure
#
# Please do not edit.

workflow_cmd := %(workflow_cmd)s

config_file := %(config_file)s

analysis_dir := %(analysis_dir)s
results_dir := $(analysis_dir)/results

complete_tag := %(complete_tag)s

finish_task := $(analysis_dir)/$(complete_tag)

get_chrom_dir = $(analysis_dir)/chromosomes/$1
get_bin_task = $(call get_chrom_dir,$1)/bins/$2/$(complete_tag)


.PHONY: all

all: $(finish_task)
\t@$(print_success)


define print_success
echo;\\
echo Analysis complete. Final gVCF output can be found in $(results_dir);\\
echo
endef


# top level results target:
#
$(finish_task):
\t$(workflow_cmd) consolidate --config=$(config_file)


# chromosome bin targets:
#
"""

BIN_TEMPLATE = """\
%(name)s := $(call get_bin_task,%(chrom)s,%(bin_id)s)
$(finish_task): $(%(name)s)
$(%(name)s):
\t$(workflow_cmd) callbin --config=$(config_file) --chrom=%(chrom)s --bin=%(bin_id)s%(extra)s

"""

def makefile_text(config, graph=None):
    if graph is None:
        graph = build_graph(config)
    out_dir = config.derived.outDir
    out = [MAKEFILE_HEADER % {"workflow_cmd": config.derived.workflowCmd,
                              "config_file": get_run_config_file(out_dir),
                              "analysis_dir": out_dir,
                              "complete_tag": region.COMPLETE_TAG}]
    for node in graph.bins:
        out.append(BIN_TEMPLATE % {"name": node.name, "chrom": node.task.chrom,
                                   "bin_id": node.task.bin_id,
                                   "extra": " --skip-header" if node.skip_header else ""})
    return "".join(out)

def write_makefile(config, out_file=None):
    if out_file is None:
        out_file = os.path.join(config.derived.outDir, "Makefile")
    text = makefile_text(config)
    with file_transaction(config, out_file) as tx_out_file:
        with open(tx_out_file, "w") as out_handle:
            out_handle.write(text)
    return out_file

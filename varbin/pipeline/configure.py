"""Configure a binned variant calling run for a BAM file and reference genome.

Configuration validates inputs, partitions every chromosome into bins,
estimates chromosome depth, lays out the analysis directory and writes the
persisted run configuration plus the Makefile that drives the run.
"""
import collections
import os
import sys

from varbin import bam, utils
from varbin.bam import depth, fasta, ref
from varbin.distributed import graph
from varbin.distributed.transaction import file_transaction
from varbin.log import logger
from varbin.pipeline import config_utils, region
from varbin.pipeline.config_utils import ConfigurationError

DEFAULT_OUT_DIR = "varbinOutput"
CALLER_PROGRAM = "starling2"

ChromosomeInfo = collections.namedtuple("ChromosomeInfo", ["name", "size", "order",
                                                           "ref_size", "known_size"])

def scan_reference(ref_file, out_file):
    """Count known and total bases per reference contig, recording them in out_file.
    """
    logger.info("Scanning reference genome")
    with file_transaction(out_file) as tx_out_file:
        with open(tx_out_file, "w") as out_handle:
            fasta.write_base_counts([ref_file], out_handle)
    with open(out_file) as in_handle:
        counts = list(fasta.read_base_counts(in_handle, out_file))
    logger.info("Scanning reference genome complete")
    return counts

def check_chrom_consistency(seq_infos, base_counts):
    """Match every BAM header chromosome with a reference contig of the same length.
    """
    ref_counts = dict((bc.contig, bc) for bc in base_counts)
    out = []
    for seq in seq_infos:
        bc = ref_counts.get(seq.name)
        if bc is None:
            raise ConfigurationError("BAM headers and reference fasta disagree on chromosome: '%s' "
                                     "(missing from reference)" % seq.name)
        if bc.total <= 0:
            raise ConfigurationError("Unexpected reference size for chromosome '%s': %s"
                                     % (seq.name, bc.total))
        if bc.total != seq.size:
            raise ConfigurationError("BAM headers and reference fasta disagree on chromosome: '%s' "
                                     "(BAM length %s, reference length %s)"
                                     % (seq.name, seq.size, bc.total))
        out.append(ChromosomeInfo(seq.name, seq.size, seq.order, bc.total, bc.known))
    return out

def _check_inputs(bam_file, ref_file, out_dir):
    utils.check_file(bam_file, "input BAM")
    bam.check_index(bam_file)
    utils.check_file(ref_file, "reference")
    ref.check_fasta_idx(ref_file)
    if os.path.exists(out_dir):
        raise ConfigurationError("Output path already exists: '%s'" % out_dir)

def _make_dirs(out_dir, chrom_infos, bin_size, write_realigned):
    utils.safe_makedir(region.get_results_dir(out_dir))
    if write_realigned:
        utils.safe_makedir(region.get_realigned_dir(out_dir))
    for chrom in chrom_infos:
        for bin_id in region.get_bin_list(chrom.size, bin_size):
            utils.safe_makedir(region.get_bin_dir(out_dir, chrom.name, bin_id))

def get_workflow_cmd():
    return "%s -m varbin.pipeline.main" % sys.executable

def configure_workflow(bam_file, ref_file, config_file, out_dir=None, cmdline=None):
    """Plan a run, returning the validated WorkflowConfig written to the analysis directory.
    """
    bam_file = utils.get_abspath(bam_file)
    ref_file = utils.get_abspath(ref_file)
    out_dir = utils.get_abspath(out_dir or DEFAULT_OUT_DIR)
    _check_inputs(bam_file, ref_file, out_dir)
    input_config = config_utils.load_config(config_file)
    user = config_utils.check_user_config(input_config, config_file)
    resources = input_config.get("resources") or {}
    caller_bin = config_utils.get_program("caller", input_config, default=CALLER_PROGRAM)
    bgzip_bin = config_utils.get_program("bgzip", input_config)
    seq_infos = bam.chrom_info(bam_file)
    if not seq_infos:
        raise ConfigurationError("No @SQ chromosome entries in BAM header: '%s'" % bam_file)

    config_dir = utils.safe_makedir(region.get_config_dir(out_dir))
    base_counts = scan_reference(ref_file, os.path.join(config_dir, "ref.counts.txt"))
    chrom_infos = check_chrom_consistency(seq_infos, base_counts)
    derived = {"configurationCmdline": cmdline or " ".join(sys.argv),
               "inputBam": bam_file,
               "refFile": ref_file,
               "outDir": out_dir,
               "knownGenomeSize": sum(bc.known for bc in base_counts),
               "chromOrder": [c.name for c in chrom_infos],
               "chromSizes": dict((c.name, c.ref_size) for c in chrom_infos),
               "chromKnownSizes": dict((c.name, c.known_size) for c in chrom_infos),
               "callerBin": caller_bin,
               "bgzipBin": bgzip_bin,
               "workflowCmd": get_workflow_cmd()}
    if not user.isSkipDepthFilters:
        derived["depthFile"] = depth.run(bam_file, os.path.join(config_dir, "chrom.depth.txt"),
                                         {"user": user._asdict()})
    config = config_utils.WorkflowConfig.from_dict({"user": user._asdict(), "derived": derived,
                                                    "resources": resources}, source=config_file)
    _make_dirs(out_dir, chrom_infos, config.user.binSize, config.user.isWriteRealignedBam)
    config_utils.write_workflow_config(config, graph.get_run_config_file(out_dir))
    makefile = graph.write_makefile(config)
    logger.info("Configured %s chromosomes in %s bins. Run the analysis with: make -C %s"
                % (len(chrom_infos), len(list(region.bin_tasks(config))), os.path.dirname(makefile)))
    return config

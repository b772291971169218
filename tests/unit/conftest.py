"""Pytest fixtures and test helper functions"""
import os

import pytest
from Bio import bgzf

from varbin import utils
from varbin.pipeline import region
from varbin.pipeline.config_utils import WorkflowConfig

USER_CONFIG = {"binSize": 1000000,
               "depthFilterMultiple": 3.0,
               "minGQX": 30,
               "indelMaxRefRepeat": 8,
               "minMapq": 20,
               "maxInputDepth": 0,
               "isSkipDepthFilters": True,
               "isWriteRealignedBam": False,
               "extraIvcArguments": ""}

CHROM_SIZES = [("chr1", 2500000), ("chr2", 500000)]

VCF_HEADER = ("##fileformat=VCFv4.1\n"
              "##contig=<ID=chr1,length=2500000>\n"
              "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n")


def make_config_dict(out_dir, chrom_sizes=None, **user_opts):
    chrom_sizes = CHROM_SIZES if chrom_sizes is None else chrom_sizes
    user = dict(USER_CONFIG)
    user.update(user_opts)
    derived = {"configurationCmdline": "varbin_workflow.py configure",
               "inputBam": os.path.join(out_dir, "inputs", "NA12878.bam"),
               "refFile": os.path.join(out_dir, "inputs", "genome.fa"),
               "outDir": out_dir,
               "knownGenomeSize": sum(size for _, size in chrom_sizes) - 100,
               "chromOrder": [c for c, _ in chrom_sizes],
               "chromSizes": dict(chrom_sizes),
               "chromKnownSizes": dict((c, size - 50) for c, size in chrom_sizes),
               "callerBin": "/usr/local/bin/starling2",
               "bgzipBin": "/usr/local/bin/bgzip",
               "workflowCmd": "/usr/bin/python -m varbin.pipeline.main"}
    if not user["isSkipDepthFilters"]:
        derived["depthFile"] = os.path.join(out_dir, "config", "chrom.depth.txt")
    return {"user": user, "derived": derived}

def make_config(out_dir, chrom_sizes=None, **user_opts):
    return WorkflowConfig.from_dict(make_config_dict(out_dir, chrom_sizes, **user_opts))

def make_analysis_dirs(config):
    """Create the analysis directory layout with empty input files.
    """
    out_dir = config.derived.outDir
    for dname in [region.get_results_dir(out_dir), region.get_config_dir(out_dir),
                  os.path.dirname(config.derived.inputBam)]:
        utils.safe_makedir(dname)
    for task in region.bin_tasks(config):
        utils.safe_makedir(task.bin_dir)
    for fname in [config.derived.inputBam, config.derived.refFile]:
        with open(fname, "w") as out_handle:
            out_handle.write("placeholder\n")
    return config


def write_bgzf(fname, text):
    handle = bgzf.BgzfWriter(fname, "wb")
    handle.write(text.encode("ascii"))
    handle.close()
    return fname


@pytest.fixture
def workflow_config(tmpdir):
    return make_config(str(tmpdir.join("analysis")))


@pytest.fixture
def analysis(tmpdir):
    return make_analysis_dirs(make_config(str(tmpdir.join("analysis"))))

"""Consolidate bin level outputs into the final results of a run.

Bin outputs are combined in chromosome then bin order, the same order used
to decide which bin writes the VCF header, so the merged gVCF is sorted and
carries exactly one header. Bin files are removed only after the final file
is in place and indexed.
"""
import os

from varbin import bam, utils
from varbin.distributed import graph
from varbin.log import logger
from varbin.pipeline import config_utils, region
from varbin.variation import vcfutils


class ConsistencyError(RuntimeError):
    """An expected intermediate output of the workflow is missing.
    """
    pass


def check_bin_dirs(config):
    utils.check_dir(config.derived.outDir, "output")
    for chrom in config.derived.chromOrder:
        utils.check_dir(region.get_chrom_dir(config.derived.outDir, chrom), "input chromosome")
    for task in region.bin_tasks(config):
        utils.check_dir(task.bin_dir, "input bin")

def get_bin_file_list(config, file_name, label, required=True):
    """Bin level files with the given name, in chromosome then bin order.
    """
    out = []
    for task in region.bin_tasks(config):
        path = os.path.join(task.bin_dir, file_name)
        if os.path.exists(path):
            out.append(path)
        elif required:
            raise ConsistencyError("Can't find bin-level %s file: '%s'" % (label, path))
    return out

def _is_consolidated(out_file, index_file):
    return utils.file_exists(out_file) and utils.file_uptodate(index_file, out_file)

def consolidate_vcf(config):
    """Combine all bin gVCFs into results/<prefix>.genome.vcf.gz with a tabix index.
    """
    file_name = region.vcf_name(config.file_prefix)
    out_file = os.path.join(region.get_results_dir(config.derived.outDir), file_name)
    if _is_consolidated(out_file, out_file + ".tbi"):
        logger.info("Final gVCF already consolidated: %s" % out_file)
        return out_file
    vcf_files = get_bin_file_list(config, file_name, "genome vcf")
    if not vcf_files:
        raise ConsistencyError("No bin-level gVCF output")
    utils.safe_makedir(os.path.dirname(out_file))
    if len(vcf_files) == 1:
        vcfutils.move_vcf(vcf_files[0], out_file)
    else:
        logger.info("Concatenating %s bin gVCF files" % len(vcf_files))
        vcfutils.bgzf_concat(vcf_files, out_file, config)
    vcfutils.tabix_index(out_file)
    for vcf_file in vcf_files:
        utils.remove_safe(vcf_file)
    return out_file

def consolidate_bam(config):
    """Merge bin realigned reads into realigned/<prefix>.realigned.bam.

    Returns None when no bin wrote realigned reads.
    """
    file_name = region.realigned_bam_name(config.file_prefix)
    out_file = os.path.join(region.get_realigned_dir(config.derived.outDir), file_name)
    if _is_consolidated(out_file, out_file + ".bai"):
        logger.info("Realigned BAM already consolidated: %s" % out_file)
        return out_file
    bam_files = get_bin_file_list(config, file_name, "realigned bam", required=False)
    if not bam_files:
        logger.info("No bin-level realigned BAM files found, skipping realigned BAM output")
        return None
    utils.safe_makedir(os.path.dirname(out_file))
    logger.info("Merging %s bin realigned BAM files" % len(bam_files))
    bam.merge(bam_files, out_file, config)
    bam.index(out_file)
    for bam_file in bam_files:
        utils.remove_safe(bam_file)
    return out_file

def run(config_file):
    """Consolidate a full run and write the run completion marker.
    """
    config = config_utils.load_workflow_config(config_file)
    marker = graph.get_finish_marker(config.derived.outDir)
    graph.clear_marker(marker)
    check_bin_dirs(config)
    vcf_file = consolidate_vcf(config)
    bam_file = consolidate_bam(config) if config.user.isWriteRealignedBam else None
    graph.mark_complete(marker)
    logger.info("Consolidated results: %s" % vcf_file)
    return vcf_file, bam_file

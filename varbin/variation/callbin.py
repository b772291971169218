"""Call small variants and gVCF blocks on a single chromosome bin.

The caller executable is an external collaborator: BinCaller builds its
command line from the run configuration and pipes the gVCF it writes to
stdout through bgzip into the bin directory.
"""
import os
import shlex

from varbin import bam, utils
from varbin.distributed import graph
from varbin.distributed.transaction import file_transaction
from varbin.log import logger
from varbin.pipeline import region
from varbin.pipeline.consolidate import ConsistencyError
from varbin.provenance import do

# Fixed caller tuning, not exposed as user configuration
FIXED_CALLER_ARGS = ["-bsnp-ssd-no-mismatch", "0.35",
                     "-bsnp-ssd-one-mismatch", "0.6",
                     "-min-vexp", "0.25",
                     "-max-window-mismatch", "2", "20",
                     "-max-indel-size", "50"]


class BinCaller:
    """Run the variant caller executable over one bin.
    """
    def __init__(self, config):
        self.config = config

    def command(self, task, skip_header=False):
        """Caller arguments for a bin, writing the gVCF to stdout.
        """
        user = self.config.user
        derived = self.config.derived
        cmd = [derived.callerBin,
               "--gvcf-file", "-",
               "--gvcf-max-depth-factor", str(user.depthFilterMultiple),
               "--gvcf-min-gqx", str(user.minGQX),
               "--gvcf-max-indel-ref-repeat", str(user.indelMaxRefRepeat),
               "-bam-file", derived.inputBam,
               "-samtools-reference", derived.refFile,
               "-bam-seq-name", task.chrom,
               "-report-range-begin", str(task.begin),
               "-report-range-end", str(task.end),
               "-clobber",
               "-min-paired-align-score", str(user.minMapq),
               "-min-single-align-score", str(user.minMapq)]
        cmd += FIXED_CALLER_ARGS
        cmd += ["-genome-size", str(derived.knownGenomeSize)]
        if user.maxInputDepth > 0:
            cmd += ["--max-input-depth", str(user.maxInputDepth)]
        if not user.isSkipDepthFilters:
            cmd += ["--chrom-depth-file", derived.depthFile]
        if user.isWriteRealignedBam:
            cmd += ["-realigned-read-file", task.unsorted_bam]
        if user.extraIvcArguments and user.extraIvcArguments.strip():
            cmd += shlex.split(user.extraIvcArguments)
        if skip_header:
            cmd.append("--gvcf-skip-header")
        return cmd

    def run(self, task, out_file, skip_header=False):
        """Run the caller, bgzipping its output to out_file and its stderr to the bin log.
        """
        caller_cmd = " ".join(shlex.quote(x) for x in self.command(task, skip_header))
        cmd = "{caller_cmd} 2> {log_file} | {bgzip} -c > {out_file}".format(
            caller_cmd=caller_cmd, log_file=shlex.quote(task.log_file),
            bgzip=shlex.quote(self.config.derived.bgzipBin), out_file=shlex.quote(out_file))
        do.run(cmd, "Calling variants", checks=[do.file_nonempty(out_file)],
               region="%s:%s-%s" % (task.chrom, task.begin, task.end))
        return out_file


def sort_realigned(task):
    """Coordinate sort the realigned reads of a bin, removing the unsorted file.
    """
    if os.path.exists(task.unsorted_bam):
        bam.sort(task.unsorted_bam, task.realigned_bam)
        utils.remove_safe(task.unsorted_bam)
    else:
        logger.info("Can't find unsorted realigned BAM file: '%s'" % task.unsorted_bam)
    return task.realigned_bam

def run_bin(config, chrom, bin_id, skip_header=False, caller=None):
    """Call variants in one bin and mark the bin complete.

    The bin marker is only written once the partial gVCF, and realigned reads
    when requested, are in place.
    """
    task = region.get_bin_task(config, chrom, bin_id)
    utils.check_dir(config.derived.outDir, "output")
    utils.check_dir(task.bin_dir, "output bin")
    utils.check_file(config.derived.inputBam, "input BAM")
    utils.check_file(config.derived.refFile, "reference")
    graph.clear_marker(task.marker)
    if caller is None:
        caller = BinCaller(config)
    logger.info("Calling variants on %s bin %s (%s-%s)" % (chrom, bin_id, task.begin, task.end))
    with file_transaction(config, task.vcf_file) as tx_vcf_file:
        caller.run(task, tx_vcf_file, skip_header)
    if not utils.file_exists(task.vcf_file):
        raise ConsistencyError("Variant caller did not produce output for %s bin %s: '%s'"
                               % (chrom, bin_id, task.vcf_file))
    if config.user.isWriteRealignedBam:
        sort_realigned(task)
    graph.mark_complete(task.marker)
    return task

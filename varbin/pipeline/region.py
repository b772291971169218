"""Split chromosomes into fixed size bins, the unit of parallel variant calling.

Bins are numbered from zero within each chromosome and identified by zero
padded ids so directory listings sort in bin order. Coordinates are 1-based
and inclusive. The final bin of a chromosome keeps its nominal end even when
that runs past the chromosome length.
"""
import collections
import os

from varbin.pipeline.config_utils import ConfigurationError

BIN_ID_WIDTH = 4
COMPLETE_TAG = "task.complete"

BinTask = collections.namedtuple("BinTask", ["chrom", "bin_id", "begin", "end", "bin_dir",
                                             "marker", "vcf_file", "realigned_bam", "unsorted_bam",
                                             "log_file"])

def get_bin_count(chrom_size, bin_size):
    """Number of bins needed to cover a chromosome: ceil(chrom_size / bin_size).
    """
    if chrom_size < 1:
        raise ValueError("Unexpected chromosome size: %s" % chrom_size)
    if bin_size < 1:
        raise ValueError("Unexpected bin size: %s" % bin_size)
    return ((chrom_size - 1) // bin_size) + 1

def format_bin_id(index):
    return "%0*d" % (BIN_ID_WIDTH, index)

def get_bin_list(chrom_size, bin_size):
    return [format_bin_id(i) for i in range(get_bin_count(chrom_size, bin_size))]

def get_bin_range(bin_id, bin_size):
    """Nominal 1-based inclusive coordinates covered by a bin.
    """
    i = int(bin_id)
    return (i * bin_size) + 1, (i + 1) * bin_size

# ## Analysis directory layout

def get_chrom_dir(out_dir, chrom):
    return os.path.join(out_dir, "chromosomes", chrom)

def get_bin_dir(out_dir, chrom, bin_id):
    return os.path.join(get_chrom_dir(out_dir, chrom), "bins", bin_id)

def get_results_dir(out_dir):
    return os.path.join(out_dir, "results")

def get_realigned_dir(out_dir):
    return os.path.join(out_dir, "realigned")

def get_config_dir(out_dir):
    return os.path.join(out_dir, "config")

def vcf_name(prefix):
    return "%s.genome.vcf.gz" % prefix

def realigned_bam_name(prefix):
    return "%s.realigned.bam" % prefix

def make_bin_task(out_dir, prefix, chrom, bin_id, bin_size):
    bin_dir = get_bin_dir(out_dir, chrom, bin_id)
    begin, end = get_bin_range(bin_id, bin_size)
    return BinTask(chrom, bin_id, begin, end, bin_dir,
                   os.path.join(bin_dir, COMPLETE_TAG),
                   os.path.join(bin_dir, vcf_name(prefix)),
                   os.path.join(bin_dir, realigned_bam_name(prefix)),
                   os.path.join(bin_dir, "%s.unsorted.realigned.bam" % prefix),
                   os.path.join(bin_dir, "ivc.stderr"))

def bin_tasks(config):
    """Iterate over all bins of a run in chromosome order, then bin order.

    This order decides which bin writes the shared VCF header and the order
    bins are concatenated in, so it must be identical everywhere.
    """
    out_dir = config.derived.outDir
    bin_size = config.user.binSize
    for chrom in config.derived.chromOrder:
        for bin_id in get_bin_list(config.chrom_size(chrom), bin_size):
            yield make_bin_task(out_dir, config.file_prefix, chrom, bin_id, bin_size)

def get_bin_task(config, chrom, bin_id):
    """Retrieve a single bin, checking it is part of the planned run.
    """
    if chrom not in config.derived.chromOrder:
        raise ConfigurationError("Chromosome '%s' is not part of this run" % chrom)
    if bin_id not in get_bin_list(config.chrom_size(chrom), config.user.binSize):
        raise ConfigurationError("Bin '%s' is not part of chromosome '%s'" % (bin_id, chrom))
    return make_bin_task(config.derived.outDir, config.file_prefix, chrom, bin_id, config.user.binSize)

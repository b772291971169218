"""Estimate average chromosome depth from a whole genome BAM file.

Depth is estimated from mapped read counts in the BAM index and an average
aligned read length. The read length comes from a cheap subsampled pass over
the file and is only recomputed exactly when the subsample is too small to
trust. This does not work for exome or other targeted data.
"""
import collections
import random

import toolz as tz

from varbin import bam, utils
from varbin.distributed.transaction import file_transaction
from varbin.log import logger

SUBSAMPLE_FRACTION = 0.1
SUBSAMPLE_SEED = 42
MAX_RECORDS = 200000
MIN_SAMPLED_RECORDS = 100000

# pysam CIGAR operation code for M (alignment match)
CIGAR_MATCH = 0

DepthEstimate = collections.namedtuple("DepthEstimate", ["chrom", "depth", "count", "avg_length"])
LengthSample = collections.namedtuple("LengthSample", ["count", "length", "exact"])

def matched_length(cigar):
    """Total length of M operations in a CIGAR, None for reads without any.
    """
    lengths = [n for op, n in cigar if op == CIGAR_MATCH]
    return sum(lengths) if lengths else None

def _subsample(items, fraction, seed):
    rand = random.Random(seed)
    return (x for x in items if rand.random() < fraction)

def sample_read_length(cigars, fraction=None, seed=SUBSAMPLE_SEED, max_records=MAX_RECORDS):
    """Accumulate matched bases over up to max_records reads, optionally subsampling.
    """
    if fraction:
        cigars = _subsample(cigars, fraction, seed)
    matched = (m for m in (matched_length(c) for c in cigars) if m is not None)
    count, length = 0, 0
    for m in tz.take(max_records, matched):
        count += 1
        length += m
    return LengthSample(count, length, not fraction)

def estimate_read_length(get_cigars, fraction=SUBSAMPLE_FRACTION, seed=SUBSAMPLE_SEED):
    """Two pass read length estimate.

    get_cigars returns a fresh iterator over mapped read CIGARs on each call.
    The subsampled pass is accepted when it counted more than
    MIN_SAMPLED_RECORDS reads, otherwise an exact pass over all reads is used.
    """
    sample = _sample_and_close(get_cigars(), fraction, seed)
    if sample.count > MIN_SAMPLED_RECORDS:
        return sample
    logger.warning("Poor read length approximation results. Count: '%s' Rerunning exact estimate"
                   % sample.count)
    return _sample_and_close(get_cigars(), None, seed)

def _sample_and_close(cigars, fraction, seed):
    try:
        return sample_read_length(cigars, fraction, seed)
    finally:
        if hasattr(cigars, "close"):
            cigars.close()

def chrom_depths(stats, avg_length, count):
    """Depth per chromosome from index statistics and the average read length.

    Chromosomes shorter than a read are left out.
    """
    for stat in stats:
        if stat.contig == "*":
            continue
        if stat.length < avg_length:
            continue
        depth = stat.aligned * avg_length / stat.length
        yield DepthEstimate(stat.contig, depth, count, avg_length)

def estimate_chrom_depth(in_bam):
    utils.check_file(in_bam, "bam")
    stats = bam.idxstats(in_bam)
    sample = estimate_read_length(lambda: bam.mapped_cigars(in_bam))
    if sample.count == 0:
        raise ValueError("Could not estimate read length, no mapped reads with aligned bases in '%s'"
                         % in_bam)
    avg_length = sample.length / float(sample.count)
    logger.info("Estimated average aligned read length %.3f from %s reads%s" %
                (avg_length, sample.count, "" if sample.exact else " (subsampled)"))
    return list(chrom_depths(stats, avg_length, sample.count))

def write_depth_file(estimates, out_file, config=None):
    with file_transaction(config, out_file) as tx_out_file:
        with open(tx_out_file, "w") as out_handle:
            for e in estimates:
                out_handle.write("%s\t%.3f\t%s\t%.3f\n" % (e.chrom, e.depth, e.count, e.avg_length))
    return out_file

def read_depth_file(in_file):
    out = collections.OrderedDict()
    with open(in_file) as in_handle:
        for line in (l for l in in_handle if l.strip()):
            chrom, depth, count, avg_length = line.rstrip("\r\n").split("\t")
            out[chrom] = DepthEstimate(chrom, float(depth), int(count), float(avg_length))
    return out

def run(in_bam, out_file, config=None):
    """Estimate depths for a BAM file and write them to the depth file.
    """
    logger.info("Estimating chromosome depth")
    write_depth_file(estimate_chrom_depth(in_bam), out_file, config)
    logger.info("Estimating chromosome depth complete")
    return out_file

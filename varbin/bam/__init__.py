"""Functionality to query and extract information from aligned BAM files.
"""
import collections
import os

import pysam

from varbin import utils
from varbin.distributed.transaction import file_transaction
from varbin.log import logger

SeqInfo = collections.namedtuple("SeqInfo", ["name", "size", "order"])
AlignInfo = collections.namedtuple("AlignInfo", ["contig", "length", "aligned", "unaligned"])

def is_bam(in_file):
    _, ext = os.path.splitext(in_file)
    return ext == ".bam"

def open_samfile(in_file):
    if is_bam(in_file):
        return pysam.AlignmentFile(in_file, "rb")
    else:
        raise IOError("in_file must be a BAM file. Is the extension .bam?")

def check_index(in_bam):
    """Ensure a BAM file has an index, returning the index path.
    """
    for index_file in ["%s.bai" % in_bam, "%s.bai" % os.path.splitext(in_bam)[0]]:
        if os.path.exists(index_file):
            return index_file
    raise utils.ResourceError("Can't find index for BAM file '%s'" % in_bam)

def chrom_info(in_bam):
    """Chromosome name, length and declaration order from the BAM header @SQ lines.
    """
    with open_samfile(in_bam) as bamfile:
        sqs = bamfile.header.to_dict().get("SQ", [])
    out = []
    for i, sq in enumerate(sqs):
        if "SN" not in sq or "LN" not in sq:
            raise ValueError("Unexpected bam header for file '%s': %s" % (in_bam, sq))
        size = int(sq["LN"])
        if size <= 0:
            raise ValueError("Unexpected chromosome size '%s' in bam header for file '%s'" %
                             (size, in_bam))
        out.append(SeqInfo(sq["SN"], size, i))
    return out

def idxstats(in_bam):
    """Return BAM index stats for the given file, as with samtools idxstats.
    """
    check_index(in_bam)
    out = []
    for line in pysam.idxstats(in_bam).split("\n"):
        if line.strip():
            contig, length, aligned, unaligned = line.split("\t")
            out.append(AlignInfo(contig, int(length), int(aligned), int(unaligned)))
    return out

def mapped_cigars(in_bam):
    """Iterate over the CIGAR operations of mapped reads in file order.
    """
    with open_samfile(in_bam) as bamfile:
        for read in bamfile.fetch(until_eof=True):
            if not read.is_unmapped:
                yield read.cigartuples or []

def index(in_bam):
    """Index a BAM file, replacing any out of date index.
    """
    index_file = "%s.bai" % in_bam
    if not utils.file_uptodate(index_file, in_bam):
        utils.remove_safe(index_file)
        with file_transaction(index_file) as tx_index_file:
            pysam.index(in_bam, tx_index_file)
    return index_file

def sort(in_bam, out_bam):
    """Coordinate sort a BAM file.
    """
    with file_transaction(out_bam) as tx_out_bam:
        pysam.sort("-o", tx_out_bam, in_bam)
    return out_bam

def merge(bam_files, out_bam, config=None):
    """Merge sorted BAM files using the header of the first input for the output.
    """
    if not bam_files:
        raise ValueError("No BAM files to merge into %s" % out_bam)
    for bam_file in bam_files:
        utils.check_file(bam_file, "BAM to merge")
    with file_transaction(config, out_bam) as tx_out_bam:
        header_file = "%s-header.sam" % os.path.splitext(tx_out_bam)[0]
        with open_samfile(bam_files[0]) as bamfile:
            with open(header_file, "w") as out_handle:
                out_handle.write(str(bamfile.header))
        logger.debug("Merging %s BAM files into %s" % (len(bam_files), out_bam))
        pysam.merge("-f", "-h", header_file, tx_out_bam, *bam_files)
    return out_bam

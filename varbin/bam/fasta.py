"""Scan reference fasta files for known and total base counts per contig.

Counts are reported as tab-delimited `file, contig, knownCount, totalCount`
records, where known bases are ACGT in either case. Anything else, including
IUPAC ambiguity codes and gaps, only counts towards the total.
"""
import collections

from Bio import SeqIO

from varbin.pipeline.config_utils import ConfigurationError

KNOWN_BASES = "ACGTacgt"

BaseCount = collections.namedtuple("BaseCount", ["fname", "contig", "known", "total"])

def count_bases(fasta, handle=None):
    """Iterate over per contig base counts of a fasta file, in file order.
    """
    for record in SeqIO.parse(handle if handle is not None else fasta, "fasta"):
        seq = str(record.seq)
        known = sum(seq.count(b) for b in KNOWN_BASES)
        yield BaseCount(fasta, record.id, known, len(seq))

def write_base_counts(fastas, out_handle):
    for fasta in fastas:
        for bc in count_bases(fasta):
            out_handle.write("%s\t%s\t%s\t%s\n" % bc)

def read_base_counts(in_handle, source="reference scan"):
    """Parse tab-delimited base count records, failing on any malformed line.
    """
    for lineno, line in enumerate(in_handle, 1):
        parts = line.rstrip("\r\n").split("\t")
        if len(parts) != 4:
            raise ConfigurationError("Unexpected value on line %s of %s: '%s'" %
                                     (lineno, source, line.rstrip("\r\n")))
        fname, contig, known, total = parts
        try:
            yield BaseCount(fname, contig, int(known), int(total))
        except ValueError:
            raise ConfigurationError("Unexpected base counts on line %s of %s: '%s'" %
                                     (lineno, source, line.rstrip("\r\n")))

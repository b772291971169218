"""Manipulation functionality to deal with reference files.
"""
from varbin import utils
from varbin.pipeline.config_utils import ConfigurationError

def fasta_idx(in_file):
    """Retrieve samtools style fasta index, which must already exist.
    """
    fasta_index = in_file + ".fai"
    if not utils.file_exists(fasta_index):
        raise utils.ResourceError("Can't find index for fasta file '%s'" % in_file)
    return fasta_index

def check_fasta_idx(in_file):
    """Ensure the fasta index exists and every line has the five samtools faidx columns.
    """
    fasta_index = fasta_idx(in_file)
    with open(fasta_index) as in_handle:
        for lineno, line in enumerate(in_handle, 1):
            if len(line.split()) != 5:
                raise ConfigurationError(
                    "Unexpected format for line number '%s' of fasta index file: '%s'\n"
                    "Re-running fasta indexing may fix the issue. To do so, run: "
                    "\"samtools faidx %s\"" % (lineno, fasta_index, in_file))
    return fasta_index


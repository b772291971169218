import io

import pytest

from varbin.bam import fasta, ref
from varbin.pipeline.config_utils import ConfigurationError
from varbin import utils

FASTA = """>chr1 first chromosome
ACGTNNNNacgt
RYKMacgt
>chrM
NNNN
"""


@pytest.fixture
def fasta_file(tmpdir):
    fname = tmpdir.join("genome.fa")
    fname.write(FASTA)
    return str(fname)


def test_count_bases(fasta_file):
    counts = list(fasta.count_bases(fasta_file))
    assert counts == [fasta.BaseCount(fasta_file, "chr1", 12, 20),
                      fasta.BaseCount(fasta_file, "chrM", 0, 4)]


def test_write_and_read_counts(fasta_file):
    out_handle = io.StringIO()
    fasta.write_base_counts([fasta_file], out_handle)
    lines = out_handle.getvalue().splitlines()
    assert lines[0] == "%s\tchr1\t12\t20" % fasta_file
    counts = list(fasta.read_base_counts(io.StringIO(out_handle.getvalue())))
    assert [(c.contig, c.known, c.total) for c in counts] == [("chr1", 12, 20), ("chrM", 0, 4)]


@pytest.mark.parametrize('line', [
    "genome.fa\tchr1\t12\n",
    "genome.fa\tchr1\t12\t20\textra\n",
    "genome.fa\tchr1\ttwelve\t20\n",
])
def test_read_counts_rejects_malformed(line):
    with pytest.raises(ConfigurationError):
        list(fasta.read_base_counts(io.StringIO(line), "scan.txt"))


class TestFastaIndex(object):

    def test_valid_index(self, fasta_file):
        with open(fasta_file + ".fai", "w") as out_handle:
            out_handle.write("chr1\t20\t23\t12\t13\nchrM\t4\t56\t4\t5\n")
        assert ref.check_fasta_idx(fasta_file) == fasta_file + ".fai"

    def test_malformed_index(self, fasta_file):
        with open(fasta_file + ".fai", "w") as out_handle:
            out_handle.write("chr1\t20\t23\t12\t13\nchrM\t4\t56\n")
        with pytest.raises(ConfigurationError) as excinfo:
            ref.check_fasta_idx(fasta_file)
        assert "line number '2'" in str(excinfo.value)

    def test_missing_index(self, fasta_file):
        with pytest.raises(utils.ResourceError):
            ref.check_fasta_idx(fasta_file)

import os

import pytest

from varbin.distributed import transaction
from varbin.distributed.transaction import tx_tmpdir
from varbin.distributed.transaction import file_transaction
from varbin.distributed.transaction import _split_args
from varbin.distributed.transaction import _move_file_with_sizecheck
from tests.unit.conftest import make_config


def write(fname, text):
    with open(fname, "w") as out_handle:
        out_handle.write(text)
    return fname


class TestSplitArgs(object):
    """Configuration is only split off when it is a configuration"""

    def test_workflow_config(self, tmpdir):
        config = make_config(str(tmpdir))
        assert _split_args((config, "/out/run.config.yaml")) == (config, ["/out/run.config.yaml"])

    def test_config_dictionary(self):
        config = {"user": {"tmpDir": "/scratch"}}
        assert _split_args((config, ["/out/a.bam", "/out/b.bam"])) == \
            (config, ["/out/a.bam", "/out/b.bam"])

    def test_files_only(self):
        assert _split_args(("/out/a.vcf.gz", ["/out/b.vcf.gz", None])) == \
            (None, ["/out/a.vcf.gz", "/out/b.vcf.gz"])


class TestTxTmpdir(object):

    def test_default_base_removed_when_empty(self, tmpdir):
        with tx_tmpdir(None, str(tmpdir)) as tmp_dir:
            assert os.path.dirname(tmp_dir) == str(tmpdir.join("varbintx"))
            assert os.path.isdir(tmp_dir)
        assert not os.path.exists(tmp_dir)
        assert not tmpdir.join("varbintx").exists()

    def test_configured_tmpdir(self, tmpdir):
        scratch = str(tmpdir.join("scratch"))
        config = make_config(str(tmpdir.join("analysis")), tmpDir=scratch)
        with tx_tmpdir(config, str(tmpdir)) as tmp_dir:
            assert os.path.dirname(tmp_dir) == scratch
        assert not os.path.exists(tmp_dir)
        assert os.path.isdir(scratch)
        assert not tmpdir.join("varbintx").exists()

    def test_kept_without_remove(self, tmpdir):
        with tx_tmpdir(None, str(tmpdir), remove=False) as tmp_dir:
            pass
        assert os.path.isdir(tmp_dir)


class TestFileTransaction(object):

    def test_workflow_config_output(self, tmpdir):
        config = make_config(str(tmpdir))
        out_file = str(tmpdir.join("config", "run.config.yaml"))
        with file_transaction(config, out_file) as tx_out_file:
            assert tx_out_file != out_file
            assert os.path.basename(tx_out_file) == "run.config.yaml"
            write(tx_out_file, "user: {}\n")
            assert not os.path.exists(out_file)
        assert tmpdir.join("config", "run.config.yaml").read() == "user: {}\n"
        assert not tmpdir.join("config", "varbintx").exists()

    def test_workflow_config_with_tmpdir(self, tmpdir):
        scratch = str(tmpdir.join("scratch"))
        config = make_config(str(tmpdir), tmpDir=scratch)
        out_file = str(tmpdir.join("results", "NA12878.genome.vcf.gz"))
        with file_transaction(config, out_file) as tx_out_file:
            assert tx_out_file.startswith(scratch + os.sep)
            write(tx_out_file, "vcf")
        assert tmpdir.join("results", "NA12878.genome.vcf.gz").read() == "vcf"
        assert os.listdir(scratch) == []

    def test_several_outputs(self, tmpdir):
        config = make_config(str(tmpdir))
        out_files = [str(tmpdir.join("a.txt")), str(tmpdir.join("b.txt"))]
        with file_transaction(config, out_files) as tx_out_files:
            assert isinstance(tx_out_files, tuple)
            for tx_out_file in tx_out_files:
                write(tx_out_file, os.path.basename(tx_out_file))
        assert tmpdir.join("a.txt").read() == "a.txt"
        assert tmpdir.join("b.txt").read() == "b.txt"

    @pytest.mark.parametrize(("fname", "index_ext"), [
        ("NA12878.genome.vcf.gz", ".tbi"),
        ("NA12878.realigned.bam", ".bai"),
    ])
    def test_index_travels_with_data(self, tmpdir, fname, index_ext):
        out_file = str(tmpdir.join("results", fname))
        with file_transaction(make_config(str(tmpdir)), out_file) as tx_out_file:
            write(tx_out_file, "data")
            write(tx_out_file + index_ext, "index")
        assert tmpdir.join("results", fname).read() == "data"
        assert tmpdir.join("results", fname + index_ext).read() == "index"

    def test_unwritten_output_not_created(self, tmpdir):
        out_file = str(tmpdir.join("out.txt"))
        with file_transaction(out_file):
            pass
        assert not tmpdir.join("out.txt").exists()

    def test_failure_leaves_no_output(self, tmpdir):
        out_file = str(tmpdir.join("out.txt"))
        with pytest.raises(ValueError):
            with file_transaction(make_config(str(tmpdir)), out_file) as tx_out_file:
                write(tx_out_file, "partial\n")
                raise ValueError("interrupted")
        assert not tmpdir.join("out.txt").exists()
        assert not tmpdir.join("varbintx").exists()


class TestMoveWithSizeCheck(object):

    def test_moves_and_clears_flag(self, tmpdir):
        tx_file = write(str(tmpdir.join("tx.txt")), "done\n")
        final_file = str(tmpdir.join("final.txt"))
        _move_file_with_sizecheck(tx_file, final_file)
        assert tmpdir.join("final.txt").read() == "done\n"
        assert not tmpdir.join("final.txt.varbintmp").exists()

    def test_size_mismatch_keeps_flag(self, tmpdir, mocker):
        mocker.patch("varbin.distributed.transaction.utils.get_size", side_effect=[5, 3])
        tx_file = write(str(tmpdir.join("tx.txt")), "done\n")
        final_file = str(tmpdir.join("final.txt"))
        with pytest.raises(IOError) as excinfo:
            _move_file_with_sizecheck(tx_file, final_file)
        assert "Incomplete transfer" in str(excinfo.value)
        assert tmpdir.join("final.txt.varbintmp").exists()
        assert transaction.utils.get_size.call_count == 2

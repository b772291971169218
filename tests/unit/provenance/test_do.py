import subprocess

import pytest

from varbin.provenance import do


def test_run_list_command(tmpdir):
    out_file = tmpdir.join("out.txt")
    do.run(["cp", __file__, str(out_file)], "Copy file", checks=[do.file_nonempty(str(out_file))])
    assert out_file.exists()


def test_run_piped_command(tmpdir):
    out_file = tmpdir.join("out.txt")
    do.run("printf 'b\\na\\n' | sort > %s" % out_file, "Sort lines")
    assert out_file.read() == "a\nb\n"


def test_pipe_failure_detected(tmpdir):
    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        do.run("false | cat > %s" % tmpdir.join("out.txt"))
    assert "false" in excinfo.value.cmd


def test_failed_check(tmpdir):
    with pytest.raises(IOError):
        do.run(["true"], checks=[do.file_nonempty(str(tmpdir.join("missing.txt")))])


def test_error_includes_output():
    with pytest.raises(subprocess.CalledProcessError) as excinfo:
        do.run("echo 'bad input' && exit 3")
    assert excinfo.value.returncode == 3
    assert "bad input" in excinfo.value.cmd

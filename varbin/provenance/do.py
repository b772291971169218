"""Run external commands with logging of the command line and its output.

Commands are logged to the separate command log. Their combined stdout and
stderr goes to the debug log as it arrives, and the last lines are attached
to the CalledProcessError raised on failure.
"""
import collections
import os
import shutil
import subprocess

from varbin import utils
from varbin.log import logger, logger_cl

OUTPUT_TAIL = 100
PIPE_MARKERS = [" | ", ">(", "<("]


def run(cmd, descr=None, checks=None, region=None):
    """Run the provided command, logging details and checking for errors.

    cmd is either an argument list, run directly, or a string run through
    the shell. Strings containing pipes run in bash with pipefail so a
    failure anywhere in the pipeline is reported.
    """
    if descr:
        logger.debug("%s : %s" % (descr, region) if region else descr)
    args, shell, executable = _shell_args(cmd)
    logger_cl.debug(args if shell else " ".join(args))
    try:
        returncode, tail = _run_and_log(args, shell, executable)
        if returncode != 0:
            raise subprocess.CalledProcessError(returncode, _failure_msg(args, shell, tail))
        for check in checks or []:
            if not check():
                raise IOError("External command failed: %s" % (descr or _cmd_str(args, shell)))
    except (subprocess.CalledProcessError, IOError):
        logger.exception()
        raise

def find_bash():
    for test_bash in [shutil.which("bash"), "/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"]:
        if test_bash and os.path.exists(test_bash):
            return test_bash
    raise utils.ResourceError("Could not find bash in any standard location. Needed for unix pipes")

def _shell_args(cmd):
    if isinstance(cmd, str):
        if any(marker in cmd for marker in PIPE_MARKERS):
            return "set -o pipefail; " + cmd, True, find_bash()
        return cmd, True, None
    return [str(x) for x in cmd], False, None

def _cmd_str(args, shell):
    return args if shell else " ".join(args)

def _run_and_log(args, shell, executable):
    """Run a command to completion, returning its exit code and last output lines.
    """
    tail = collections.deque(maxlen=OUTPUT_TAIL)
    proc = subprocess.Popen(args, shell=shell, executable=executable,
                            stdout=subprocess.PIPE, stderr=subprocess.STDOUT, close_fds=True)
    with proc.stdout:
        for raw in iter(proc.stdout.readline, b""):
            line = raw.decode("utf-8", errors="replace")
            tail.append(line)
            if line.rstrip():
                logger.debug(line.rstrip())
    return proc.wait(), tail

def _failure_msg(args, shell, tail):
    return "%s\n%s" % (_cmd_str(args, shell), "".join(tail))

# checks for validating run completed successfully

def file_nonempty(target_file):
    def check():
        ok = utils.file_exists(target_file)
        if not ok:
            logger.info("Did not find non-empty output file {0}".format(target_file))
        return ok
    return check

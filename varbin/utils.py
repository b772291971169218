"""Helpful utilities for building the binned calling workflow.
"""
import os
import shutil
import time


class ResourceError(IOError):
    """A required input file, directory or tool is not available.
    """
    pass


def safe_makedir(dname):
    """Make a directory if it doesn't exist, handling concurrent race conditions.
    """
    if not dname:
        return dname
    num_tries = 0
    max_tries = 5
    while not os.path.exists(dname):
        # we could get an error here if multiple processes are creating
        # the directory at the same time. Grr, concurrency.
        try:
            os.makedirs(dname)
        except OSError:
            if num_tries > max_tries:
                raise
            num_tries += 1
            time.sleep(2)
    return dname

def file_exists(fname):
    """Check if a file exists and is non-empty.
    """
    try:
        return fname and os.path.exists(fname) and os.path.getsize(fname) > 0
    except OSError:
        return False

def get_size(path):
    """ Returns the size in bytes if `path` is a file,
        or the size of all files in `path` if it's a directory.
        Analogous to `du -s`.
    """
    if os.path.isfile(path):
        return os.path.getsize(path)
    return sum(get_size(os.path.join(path, f)) for f in os.listdir(path))

def file_uptodate(fname, cmp_fname):
    """Check if a file exists, is non-empty and is more recent than cmp_fname.
    """
    try:
        return (file_exists(fname) and file_exists(cmp_fname) and
                os.path.getmtime(fname) >= os.path.getmtime(cmp_fname))
    except OSError:
        return False

def check_file(fname, label=None):
    """Raise a ResourceError naming the missing file unless it is present.
    """
    if not fname or not os.path.isfile(fname):
        raise ResourceError("Can't find%s file: '%s'" % (" %s" % label if label else "", fname))
    return fname

def check_dir(dname, label=None):
    if not dname or not os.path.isdir(dname):
        raise ResourceError("Can't find%s directory: '%s'" % (" %s" % label if label else "", dname))
    return dname

def get_abspath(path, pardir=None):
    if pardir is None:
        pardir = os.getcwd()
    path = os.path.expandvars(os.path.expanduser(path))
    return os.path.normpath(os.path.join(pardir, path))

def file_basename(path):
    """Strip directory and final extension: /path/to/NA12878.bam -> NA12878
    """
    return os.path.splitext(os.path.basename(path))[0]

def remove_safe(f):
    try:
        if os.path.isdir(f):
            shutil.rmtree(f)
        else:
            os.remove(f)
    except OSError:
        pass

def touch(fname):
    with open(fname, "a"):
        os.utime(fname, None)
    return fname

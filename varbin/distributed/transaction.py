"""File based transactions, so interrupted steps never leave partial outputs.

Outputs are written inside a temporary directory and only moved to their
final location once the wrapped block finishes. A rerun after any
interruption finds either a complete file or no file at all.
"""
import contextlib
import os
import shutil
import tempfile

import toolz as tz

from varbin import utils


DEFAULT_TMP = 'varbintx'
# index files travelling with their data file
INDEX_EXTS = [(".bam", ".bai"), (".vcf.gz", ".tbi")]


@contextlib.contextmanager
def tx_tmpdir(config=None, base_dir=None, remove=True):
    """Create, and afterwards remove, a unique temporary directory.

    The directory lives under the configured `user: tmpDir` when set,
    otherwise under a `varbintx` directory in base_dir (the current
    directory by default), which is removed again once empty. config can be
    a WorkflowConfig or a dictionary with the same layout.
    """
    base_dir = base_dir or os.getcwd()
    tmpdir_base = utils.get_abspath(_get_base_tmpdir(config, base_dir))
    utils.safe_makedir(tmpdir_base)
    tmp_dir = tempfile.mkdtemp(dir=tmpdir_base)
    try:
        yield tmp_dir
    finally:
        if remove:
            utils.remove_safe(tmp_dir)
            if os.path.basename(tmpdir_base) == DEFAULT_TMP and not os.listdir(tmpdir_base):
                os.rmdir(tmpdir_base)


def _get_base_tmpdir(config, fallback_base_dir):
    if hasattr(config, "to_dict"):
        config = config.to_dict()
    configured = tz.get_in(("user", "tmpDir"), config) if config else None
    return configured or os.path.join(fallback_base_dir, DEFAULT_TMP)


@contextlib.contextmanager
def file_transaction(*config_and_files):
    """Yield temporary paths for output files, moving them into place on success.

    An optional first argument is a configuration, used to find the
    temporary directory. Without a configured directory, temporary files go
    next to the first output so the final move stays on one filesystem.
    Yields a single path for one output, a tuple for several.
    """
    with _flatten_plus_safe(config_and_files) as (tx_files, final_files):
        for tx_file in tx_files:
            utils.remove_safe(tx_file)
        yield tx_files[0] if len(tx_files) == 1 else tuple(tx_files)
        for tx_file, final_file in zip(tx_files, final_files):
            if os.path.exists(tx_file):
                _move_tmp_files(tx_file, final_file)


def _move_tmp_files(tx_file, final_file):
    utils.safe_makedir(os.path.dirname(final_file))
    if os.path.isdir(final_file) and os.path.isdir(tx_file):
        utils.remove_safe(final_file)
    _move_file_with_sizecheck(tx_file, final_file)
    for data_ext, index_ext in INDEX_EXTS:
        if tx_file.endswith(data_ext) and os.path.exists(tx_file + index_ext):
            _move_file_with_sizecheck(tx_file + index_ext, final_file + index_ext)


def _move_file_with_sizecheck(tx_file, final_file):
    """Move a finished file into place, failing if the sizes differ after the move.

    A '.varbintmp' flag file sits next to the destination while the move
    runs, so an interrupted transfer is visible.
    """
    flag_file = final_file + ".varbintmp"
    open(flag_file, 'wb').close()
    want_size = utils.get_size(tx_file)
    shutil.move(tx_file, final_file)
    transfer_size = utils.get_size(final_file)
    if want_size != transfer_size:
        raise IOError("Incomplete transfer of '%s' to '%s': expected %s bytes, found %s"
                      % (tx_file, final_file, want_size, transfer_size))
    utils.remove_safe(flag_file)


@contextlib.contextmanager
def _flatten_plus_safe(config_and_files):
    """Split off the configuration and map each output file to a temporary path.
    """
    config, final_files = _split_args(config_and_files)
    base_dir = os.path.dirname(os.path.abspath(final_files[0])) if final_files else None
    with tx_tmpdir(config, base_dir) as tmp_dir:
        yield [os.path.join(tmp_dir, os.path.basename(f)) for f in final_files], final_files


def _is_config(x):
    return isinstance(x, dict) or hasattr(x, "to_dict")


def _split_args(config_and_files):
    config = None
    if config_and_files and _is_config(config_and_files[0]):
        config, config_and_files = config_and_files[0], config_and_files[1:]
    files = []
    for arg in config_and_files:
        files.extend(arg if isinstance(arg, (list, tuple)) else [arg])
    return config, [f for f in files if f]

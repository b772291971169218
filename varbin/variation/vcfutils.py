"""Utilities to manipulate bgzipped VCF files.
"""
import os
import shutil

import pysam

from varbin import utils
from varbin.distributed.transaction import file_transaction
from varbin.log import logger

# Empty BGZF block that terminates every bgzip output file
BGZF_EOF = bytes.fromhex("1f8b08040000000000ff0600424302001b0003000000000000000000")

def _copy_without_eof(in_file, out_handle, buffer_size=1024 * 1024):
    """Copy all BGZF blocks of a file, leaving off a trailing EOF marker block.
    """
    size = os.path.getsize(in_file)
    to_copy = size
    with open(in_file, "rb") as in_handle:
        if size >= len(BGZF_EOF):
            in_handle.seek(size - len(BGZF_EOF))
            if in_handle.read(len(BGZF_EOF)) == BGZF_EOF:
                to_copy = size - len(BGZF_EOF)
            in_handle.seek(0)
        while to_copy > 0:
            chunk = in_handle.read(min(buffer_size, to_copy))
            if not chunk:
                break
            out_handle.write(chunk)
            to_copy -= len(chunk)

def bgzf_concat(in_files, out_file, config=None):
    """Concatenate bgzipped files in the given order into a single valid bgzip file.

    BGZF members can be joined byte-wise; only the end-of-file marker blocks
    between inputs get dropped so readers do not stop early.
    """
    for in_file in in_files:
        utils.check_file(in_file, "bgzipped input")
    with file_transaction(config, out_file) as tx_out_file:
        with open(tx_out_file, "wb") as out_handle:
            for in_file in in_files:
                _copy_without_eof(in_file, out_handle)
            out_handle.write(BGZF_EOF)
    return out_file

def tabix_index(in_file, preset="vcf"):
    """Index a bgzipped file with tabix, replacing any out of date index.
    """
    in_file = os.path.abspath(in_file)
    out_file = in_file + ".tbi"
    if not utils.file_uptodate(out_file, in_file):
        utils.remove_safe(out_file)
        logger.debug("tabix index %s" % os.path.basename(in_file))
        pysam.tabix_index(in_file, preset=preset, force=True, keep_original=True)
    return out_file

def move_vcf(orig_file, new_file):
    """Move a VCF file with associated index.
    """
    for ext in ["", ".tbi"]:
        to_move = orig_file + ext
        if os.path.exists(to_move):
            shutil.move(to_move, new_file + ext)
    return new_file

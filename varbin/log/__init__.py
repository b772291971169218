"""Utility functionality for logging.
"""
import os
import sys

import logbook

from varbin import utils

LOG_NAME = "varbin-workflow"

def get_log_dir(out_dir):
    return os.path.join(out_dir, "log") if out_dir else None

logger = logbook.Logger(LOG_NAME)
logger_cl = logbook.Logger(LOG_NAME + "-commands")

def _is_cl(record, _):
    return record.channel == LOG_NAME + "-commands"

def _not_cl(record, handler):
    return not _is_cl(record, handler)

class CloseableNestedSetup(logbook.NestedSetup):
    def close(self):
        for obj in self.objects:
            if hasattr(obj, "close"):
                obj.close()

def _create_log_handler(out_dir=None, include_time=True, verbose=False):
    logbook.set_datetime_format("utc")
    handlers = [logbook.NullHandler()]
    format_str = "".join(["[{record.time:%Y-%m-%dT%H:%MZ}] " if include_time else "",
                          "{record.level_name}: {record.message}"])

    log_dir = get_log_dir(out_dir)
    if log_dir:
        utils.safe_makedir(log_dir)
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s.log" % LOG_NAME),
                                            format_string=format_str, level="INFO",
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-debug.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG", bubble=True,
                                            filter=_not_cl))
        handlers.append(logbook.FileHandler(os.path.join(log_dir, "%s-commands.log" % LOG_NAME),
                                            format_string=format_str, level="DEBUG",
                                            filter=_is_cl))
    handlers.append(logbook.StreamHandler(sys.stderr, format_string=format_str, bubble=True,
                                          level="DEBUG" if verbose else "INFO",
                                          filter=_not_cl))
    return CloseableNestedSetup(handlers)

def setup_local_logging(out_dir=None, verbose=False):
    """Setup logging for a single workflow step, directing messages to stderr and log files.

    File logging is only enabled once the analysis directory exists, so
    configuration of a new run logs to stderr until its directories are made.
    """
    handler = _create_log_handler(out_dir, verbose=verbose)
    handler.push_application()
    return handler

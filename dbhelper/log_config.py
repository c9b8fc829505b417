"""Logging for the database helper.

Connection events go to the ``dbhelper.database`` logger. Per-query timings
go to ``dbhelper.queries`` at DEBUG, which a Database attaches to its own
rotating file when the ``qlog`` option is set.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

QUERY_LOGGER = "dbhelper.queries"
QUERY_LOG_MAX_BYTES = 5 * 1024 * 1024
QUERY_LOG_BACKUPS = 3


def attach_query_log(path: str, level="DEBUG") -> RotatingFileHandler:
    """
    Send query timing records to a rotating file.

    Attaching the same file twice reuses the existing handler, so several
    Database instances can share one query log.

    Args:
        path: Log file path; missing parent directories are created
        level: Level name or number for the query logger

    Returns:
        The handler writing to `path`
    """
    query_logger = logging.getLogger(QUERY_LOGGER)
    query_logger.setLevel(level)

    target = os.path.abspath(path)
    for handler in query_logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == target:
            return handler

    log_dir = os.path.dirname(target)
    os.makedirs(log_dir, exist_ok=True)

    handler = RotatingFileHandler(
        target, maxBytes=QUERY_LOG_MAX_BYTES, backupCount=QUERY_LOG_BACKUPS
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    query_logger.addHandler(handler)
    return handler


def setup_logging(level=logging.INFO, log_dir="logs"):
    """Console logging at `level` plus the query log in `log_dir/queries.log`.

    For applications; the library itself only calls attach_query_log().
    Does nothing if the root logger already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(level)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    root.addHandler(console)

    attach_query_log(os.path.join(log_dir, "queries.log"))

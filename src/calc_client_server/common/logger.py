"""Shared logger for server and client."""
import logging
import os
import sys

LOGGER_NAME = "calc_client_server"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(message)s"


def _build_logger() -> logging.Logger:
    """
    Create the package logger with a single stream handler.

    The level comes from the ``CALC_LOG_LEVEL`` environment variable and defaults to INFO.

    :return: Configured logger
    :rtype: logging.Logger
    """
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    level = os.environ.get("CALC_LOG_LEVEL", "INFO").upper()
    # Unknown level names fall back to INFO
    log.setLevel(level if isinstance(logging.getLevelName(level), int) else logging.INFO)
    return log


logger: logging.Logger = _build_logger()

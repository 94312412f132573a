"""Structured JSON logging for the monitor and its interactive shell."""

import logging
import sys
from typing import Optional, TextIO

from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def setup_logger(
    name: str = "healthmon",
    level: str = "INFO",
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Child loggers (``healthmon.Sampler``, ``healthmon.Dispatcher``) inherit
    the handler installed here.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Destination stream; the interactive shell passes stderr so
            log records do not interleave with command output

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Replace handlers so repeated setup does not duplicate output
    logger.handlers = []

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT, timestamp=True))
    logger.addHandler(handler)

    logger.propagate = False

    return logger

"""Logging setup for the CLI.

- 0 (default): WARNING
- 1 (-v):      INFO
- 2+ (-vv):    DEBUG
"""
from __future__ import annotations

import logging
import sys

LOGGER_NAME = "connectorlint"


def setup_logging(verbosity: int = 0) -> logging.Logger:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if verbosity >= 2:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")
    elif verbosity == 1:
        formatter = logging.Formatter("[%(levelname)s] %(message)s")
    else:
        formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger

"""
Logging setup.

stdout carries protocol lines only; every diagnostic goes to stderr.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(name)s] %(levelname)s %(message)s'
_LOG_DATE_FORMAT = '%H:%M:%S'


def configure_logging(level: int = logging.WARNING) -> None:
    """
    Configure the root logger to write to stderr.

    Must run before the engine is loaded so nothing logs through a default
    handler first.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

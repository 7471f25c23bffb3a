"""
Logging configuration for campusrag.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the ``campusrag`` logger."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger("campusrag")
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False

"""Logging configuration. Call setup_logging() once at startup."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Send the 'src' namespace to stdout at the given level."""
    root = logging.getLogger("src")
    root.setLevel(level)
    if any(getattr(h, "_relay_handler", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._relay_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

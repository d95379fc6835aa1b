"""
Logging setup for the auditor process.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", stream: Optional[object] = None) -> logging.Logger:
    """
    Attach a single stream handler to the "logaudit" logger.

    Safe to call more than once; the previous handler is replaced.
    """
    root = logging.getLogger("logaudit")
    for handler in list(root.handlers):
        if getattr(handler, "_logaudit", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._logaudit = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())
    return root

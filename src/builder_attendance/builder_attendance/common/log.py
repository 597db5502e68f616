from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; the handler is only installed the first time.
    """
    root = logging.getLogger("builder_attendance")
    root.setLevel(level if isinstance(level, int) else str(level).upper())

    if not any(getattr(h, "_builder_attendance", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._builder_attendance = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    return root

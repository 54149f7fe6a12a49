"""Logging configuration for the bridge process.

stdout carries JSON-RPC responses, so log output goes to stderr and to a
rotating file under the data directory.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .settings import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | None = None, *, to_file: bool = True) -> None:
    """Install stderr and rotating-file handlers on the ``waymark`` logger.

    Safe to call more than once; only the first call installs handlers.
    """
    global _configured

    root = logging.getLogger("waymark")
    root.setLevel((level or settings.log_level).upper())

    if _configured:
        return

    formatter = logging.Formatter(_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if to_file:
        try:
            settings.log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.log_path,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            root.warning("File logging disabled (%s): %s", settings.log_path, e)

    root.propagate = False
    _configured = True

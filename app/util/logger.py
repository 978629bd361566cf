"""
Logging helper.

- get_logger(name): returns a named logger; the first call configures the root
  handler (stream, shared format, level from LOG_LEVEL).

Services call `logger = get_logger()` at the top of a function and log with f-strings.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOGGER_NAME = "promocodes"

_configured = False


def configure_logging(level_name: Optional[str] = None) -> None:
    """Configure the root logger once for console output."""
    global _configured
    level_name = (level_name or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not _configured and not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name or DEFAULT_LOGGER_NAME)

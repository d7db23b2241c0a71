"""Logging configuration helpers."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union


def configure_logging(log_file: Optional[str] = None, level: Union[int, str] = "INFO") -> None:
    """Configure application logging.

    Parameters
    ----------
    log_file
        Optional path to a log file. When omitted, logs go to stderr so that
        stdout stays free for command output.
    level
        Root log level name or number.

    Returns
    -------
    None
        This function does not return a value.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    handler_error = None
    handlers = []
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            handler_error = exc
    if not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))
    logging.basicConfig(
        level=level,
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    # numexpr announces its thread count through pandas imports.
    logging.getLogger("numexpr").setLevel(logging.WARNING)
    if handler_error is not None:
        logging.getLogger(__name__).warning(
            "Failed to open log file '%s': %s", log_file, handler_error
        )

"""Logging helpers to mirror console output into a persistent log file."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

from loguru import logger


def configure_logging(logs_dir: Path | None, verbose: bool = False) -> Path | None:
    """
    Configure loguru to emit to stderr and, when a directory is given, a rolling log file.

    Returns the file path in use when file logging is available, otherwise None.
    """
    level = "DEBUG" if verbose else "INFO"
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level: <8}</level> | {message}",
        backtrace=True,
        diagnose=verbose,
        enqueue=True,
    )

    if logs_dir is None:
        return None

    log_file: Path | None = None
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / f"tcg_cache_{datetime.now():%Y%m%d_%H%M%S}.log"
        logger.add(
            log_file,
            level="DEBUG",
            rotation="5 MB",
            retention=5,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )
    except Exception as exc:
        logger.warning(f"File logging disabled; unable to write to {logs_dir}: {exc}")
        log_file = None

    return log_file

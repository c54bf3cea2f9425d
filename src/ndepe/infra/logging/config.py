from __future__ import annotations

"""
Logging Configuration Models.

Holds the immutable settings used to bootstrap the logging subsystem and the
mapping from textual severity names to logging constants.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """
    Settings for the logging subsystem.

    Attributes:
        level: Minimum severity captured by every managed handler.
        console: Emit records to stderr.
        log_file: Optional path of a rotating diagnostic log.
        max_bytes: Size threshold that triggers a rollover of log_file.
        backup_count: Number of rotated segments kept.
        console_fmt: Record format for stderr.
        file_fmt: Record format for log_file.
        datefmt: Timestamp format for log_file.
    """
    level: str = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 2

    console_fmt: str = "%(levelname)s | %(name)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"

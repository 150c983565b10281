"""Common utilities: logger bootstrap and small text helpers"""

import logging
import math
import re
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

_WHITESPACE_RE = re.compile(r"\s+")


def init_logger(name: str, log_file: Optional[str] = None, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Initialize logger with console and optional file output"""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []  # Clear existing handlers

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def collapse_whitespace(text: str) -> str:
    """Collapse all whitespace runs to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut text to at most ``limit`` characters, marking the cut with ``suffix``."""
    if len(text) <= limit:
        return text
    return text[: max(0, limit - len(suffix))] + suffix

"""RU: Утилиты логирования и строк статуса.

EN: Logging setup and status line utilities.
"""

from __future__ import annotations

import logging
from typing import Final

import coloredlogs

DEFAULT_LOGGER_NAME: Final = "gsap_video_export"
STATUS_WIDTH: Final = 80


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """RU: Настраивает логирование c учётом флагов.

    EN: Configure logging according to verbosity flags.
    """
    level = logging.INFO
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG

    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(level)

    # RU: Не добавляем второй handler при повторном вызове.
    # EN: Avoid double handlers if called multiple times.
    if logger.handlers:
        return logger

    coloredlogs.install(level=level, logger=logger, fmt="%(message)s")
    return logger


def pad_status(label: str, value: str, *, width: int = STATUS_WIDTH) -> str:
    """Join a label and a value with dot padding up to ``width`` columns."""
    pad = max(width - len(label) - len(value), 1)
    return f"{label}{'.' * pad}{value}"


def status_line(label: str, value: str, *, ok: bool = True) -> None:
    """Emit one padded status line on the package logger."""
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if ok:
        logger.info(pad_status(label, value))
    else:
        logger.error(pad_status(label, value))


def format_duration(seconds: float) -> str:
    """Format seconds as ``1h2m3s``, ``2m3s`` or ``3s``."""
    sec = int(seconds)
    h = sec // 3600
    m = (sec - h * 3600) // 60
    s = sec - h * 3600 - m * 60
    if h:
        return f"{h}h{m}m{s}s"
    if m:
        return f"{m}m{s}s"
    return f"{s}s"

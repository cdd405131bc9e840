"""Logging setup using loguru: human-readable console + JSON file output."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from copyscan.config import Settings, get_settings

_FROM_SETTINGS = ""


def setup_logging(
    level: str | None = None,
    log_file: str | None = _FROM_SETTINGS,
    settings: Settings | None = None,
) -> None:
    """Configure loguru with a console sink and an optional JSON file sink.

    Unset arguments are read from *settings* (``get_settings()`` by default).

    Args:
        level: Minimum log level. Defaults to DEBUG when ``settings.debug``
            is on, else ``settings.log_level``.
        log_file: Path for the JSON log file. None disables file logging;
            omitted uses ``settings.log_file``.
        settings: Settings to read the defaults from.
    """
    if level is None or log_file == _FROM_SETTINGS:
        settings = settings or get_settings()
        if level is None:
            level = "DEBUG" if settings.debug else settings.log_level
        if log_file == _FROM_SETTINGS:
            log_file = settings.log_file

    logger.remove()

    # Capture and upload report from worker threads
    console_fmt = (
        "<green>{time:HH:mm:ss.SSS}</green> | <level>{level:<8}</level> | "
        "{thread.name} | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    logger.add(sys.stderr, level=level, format=console_fmt)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format="{message}",
            serialize=True,
            rotation="50 MB",
            retention="7 days",
        )
    logger.debug("Logging configured at {}", level)

"""Structured logging configuration (Loguru).

Records carry a ``request_id`` extra field; the HTTP middleware binds it
per request and everything else logs with the ``-`` placeholder.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from backend.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[request_id]} | "
    "{name}:{function}:{line} - {message}"
)


def setup_logging(level: str | None = None, log_to_file: bool = True) -> None:
    """Install the console sink and, optionally, the daily rotating file sink.

    Args:
        level: Console level; defaults to ``settings.log_level``.
        log_to_file: Also write DEBUG-level logs under ``settings.log_dir``.
    """
    console_level = (level or settings.log_level).upper()

    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=console_level,
        colorize=True,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )

    if log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "handcue_{time:YYYY-MM-DD}.log"),
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",
            retention="14 days",
            compression="gz",
            enqueue=True,
        )

    logger.debug(
        "Logging configured | console={} file={} env={}",
        console_level,
        log_dir if log_to_file else "off",
        settings.app_env,
    )

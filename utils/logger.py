# utils/logger.py
"""
Console + rotating-file loggers for the simulator.

LOG_LEVEL, LOG_FILE, LOG_MAX_MB and LOG_BACKUPS are read when a logger is
built, not at import, so values loaded from config.env by
``load_configuration`` apply to every logger created afterwards.
"""
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Union

FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NOISY_LOGGERS = ("websockets", "asyncio", "aiohttp")

_UNSET = object()


def _resolve_level(level: Union[str, int, None]) -> int:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return getattr(logging, level.strip().upper(), logging.INFO)
    return level


def _build_formatter() -> logging.Formatter:
    return logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)


def _file_handler(log_file: str, level: int) -> RotatingFileHandler:
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=int(os.getenv("LOG_MAX_MB", "5")) * 1024 * 1024,
        backupCount=int(os.getenv("LOG_BACKUPS", "5")),
        encoding="utf-8",
    )
    handler.setFormatter(_build_formatter())
    handler.setLevel(level)
    return handler


def setup_logger(name: str,
                 level: Union[str, int, None] = None,
                 log_file=_UNSET,
                 to_console: bool = True,
                 propagate: bool = True) -> logging.Logger:
    """
    Create/get a logger with console and rotating-file handlers.

    ``level`` defaults to LOG_LEVEL and ``log_file`` to LOG_FILE
    (``logs/simulator.log``); pass ``log_file=None`` for console only.
    Re-using the same name returns the same configured logger (no duplicate handlers).
    """
    logger = logging.getLogger(name)
    if logger.handlers:  # already configured
        return logger

    level = _resolve_level(level)
    logger.setLevel(level)
    logger.propagate = propagate

    if log_file is _UNSET:
        log_file = os.getenv("LOG_FILE", "logs/simulator.log")
    if log_file:
        logger.addHandler(_file_handler(log_file, level))

    if to_console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(_build_formatter())
        stream_handler.setLevel(level)
        logger.addHandler(stream_handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger

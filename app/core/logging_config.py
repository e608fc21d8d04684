# -*- coding: utf-8 -*-
"""
Logging configuration for the referral bot.

Routes logs by severity so the container platform classifies them correctly:
- DEBUG, INFO, WARNING → STDOUT
- ERROR, CRITICAL → STDERR

Records go through a QueueHandler; a QueueListener thread does the actual
stream writes, so a blocked stdout never stalls the event loop.
"""

import atexit
import logging
import os
import queue
import sys
from logging.handlers import QueueHandler, QueueListener

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL=DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "aiogram.event")


class MaxLevelFilter(logging.Filter):
    """Passes records up to max_level (inclusive)."""

    def __init__(self, max_level: int):
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


_log_listener: QueueListener | None = None


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: str | None = None) -> None:
    """
    Install queue-based logging on the root logger.

    Must be called before any logger is used. Safe to call twice: the
    previous listener is stopped and replaced.

    Args:
        level: Level name; defaults to LOG_LEVEL env var, then INFO
    """
    global _log_listener

    _stop_log_listener()

    root_level = _resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(root_level)
    stdout_handler.addFilter(MaxLevelFilter(logging.WARNING))
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter)

    log_queue = queue.Queue()
    root_logger.addHandler(QueueHandler(log_queue))

    if root_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _log_listener = QueueListener(
        log_queue,
        stdout_handler,
        stderr_handler,
        respect_handler_level=True,
    )
    _log_listener.start()
    atexit.register(_stop_log_listener)


def _stop_log_listener() -> None:
    """Stop the queue listener (called at exit and on re-setup)."""
    global _log_listener
    if _log_listener is not None:
        _log_listener.stop()
        _log_listener = None

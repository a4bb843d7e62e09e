"""
Logging for movie_merge.

Every module asks for ``get_logger("<area>")`` at import time and receives a
child of the ``movie_merge`` logger. Handlers live only on that base logger:
a master log file under the configured log dir and a console stream. Because
the children hold no handlers of their own, ``configure_logging`` can swap
the handler set after the CLI has read ``--config`` and every module logger
follows.

Batch runs (enrich, scrape) retry HTTP calls; urllib3's own connection
chatter is held at ``logging.http_level`` so it does not drown the per-record
lines.
"""

from __future__ import annotations

import logging
from logging import Logger, StreamHandler
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from movie_merge.config import MMConfig, get_config

BASE_LOGGER_NAME = "movie_merge"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HTTP_LOGGERS = ("urllib3", "requests")

_configured: bool = False
_console: Optional[StreamHandler] = None
_log_file: Optional[Path] = None


# -----------------------------------------------------------------------------
# Internal helpers
# -----------------------------------------------------------------------------

def _level(name, default: int) -> int:
    return getattr(logging, str(name or "").upper(), default)


def _log_dir(cfg: MMConfig) -> Path:
    return Path(cfg.logging.get("dir") or cfg.paths.get("logs_dir") or "logs")


def _file_handler(path: Path, rotate: bool) -> logging.Handler:
    if rotate:
        return RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
    return logging.FileHandler(path, encoding="utf-8")


def _handlers_for(cfg: MMConfig) -> List[logging.Handler]:
    global _console
    handlers: List[logging.Handler] = []

    if cfg.logging.get("file"):
        log_dir = _log_dir(cfg)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_file_handler(log_dir / cfg.logging["file"], bool(cfg.logging.get("rotate", False))))

    # bound to the stderr of the first configuration
    if _console is None:
        _console = StreamHandler()
    handlers.append(_console)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

def configure_logging(cfg: Optional[MMConfig] = None) -> Logger:
    """
    (Re)build the base logger's handlers from ``cfg`` (the cached default
    config when omitted). Safe to call more than once; the old file handler
    is closed and replaced, the console handler is reused.
    """
    global _configured, _log_file
    cfg = cfg or get_config()

    level = logging.DEBUG if cfg.debug else _level(cfg.logging.get("level"), logging.INFO)
    base = logging.getLogger(BASE_LOGGER_NAME)
    for handler in list(base.handlers):
        base.removeHandler(handler)
        if handler is not _console:
            handler.close()

    for handler in _handlers_for(cfg):
        handler.setLevel(level)
        base.addHandler(handler)
    base.setLevel(level)
    base.propagate = False

    http_level = _level(cfg.logging.get("http_level"), logging.WARNING)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    _log_file = _log_dir(cfg) / cfg.logging["file"] if cfg.logging.get("file") else None
    _configured = True
    return base


def get_logger(name: Optional[str] = None) -> Logger:
    """
    Logger for one area of the project, nested under ``movie_merge``.

    The first call configures the base logger from the default config.
    """
    if not _configured:
        configure_logging()

    logger_name = name or BASE_LOGGER_NAME
    if logger_name != BASE_LOGGER_NAME and not logger_name.startswith(BASE_LOGGER_NAME + "."):
        logger_name = f"{BASE_LOGGER_NAME}.{logger_name}"
    return logging.getLogger(logger_name)


def log_file() -> Optional[Path]:
    """Master log file currently written to, if any."""
    return _log_file

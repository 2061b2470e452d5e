"""Logging configuration for livemark hosts and tools."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LOG_FORMAT", "get_log_path", "setup_logging"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LOG_DIR = Path.home() / ".livemark" / "logs"
_LOG_FILENAME = "livemark.log"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "markdown_it")
_LOG_PATH: Path | None = None


def setup_logging(
    level: int | str | None = None,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install a rotating file handler (and optionally a console handler) on the root logger.

    ``level`` defaults to ``LIVEMARK_LOG_LEVEL`` or ``INFO``. The log directory
    defaults to ``LIVEMARK_LOG_DIR`` or ``~/.livemark/logs``. Repeated calls are
    no-ops unless ``force`` is set.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    resolved_level = _resolve_level(level)
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILENAME

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=_DATE_FORMAT)
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [file_handler]
    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        handlers.append(stream)
    for handler in handlers:
        handler.setLevel(resolved_level)

    logging.basicConfig(level=resolved_level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    quiet = max(logging.WARNING, resolved_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    return _LOG_PATH


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get("LIVEMARK_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get("LIVEMARK_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()

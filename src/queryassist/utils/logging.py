"""Logging setup for the query assistant.

Records emitted inside :func:`log_context` carry the active catalog load or
repair request as ``key=value`` pairs, so interleaved async work stays
traceable in one log file::

    2024-05-01 12:00:00 | DEBUG    | queryassist.editor.catalog | catalog=3 | Catalog load 3 failed: ...
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

__all__ = ["LogContextFilter", "current_log_context", "get_log_path", "log_context", "setup_logging"]

PACKAGE_LOGGER = "queryassist"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"

_DEFAULT_LOG_DIR = Path.home() / ".queryassist" / "logs"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "openai")
_EMPTY: Mapping[str, Any] = MappingProxyType({})
_log_context_var: ContextVar[Mapping[str, Any]] = ContextVar("queryassist_log_context", default=_EMPTY)
_LOG_PATH: Path | None = None


@contextmanager
def log_context(**fields: Any) -> Iterator[Mapping[str, Any]]:
    """Attach ``fields`` to every record logged in this context.

    Nested contexts merge; inner values win. The context follows the current
    task, so concurrent loads and repairs never see each other's fields.
    """

    merged = MappingProxyType({**_log_context_var.get(), **fields})
    token = _log_context_var.set(merged)
    try:
        yield merged
    finally:
        _log_context_var.reset(token)


def current_log_context() -> Mapping[str, Any]:
    return _log_context_var.get()


class LogContextFilter(logging.Filter):
    """Render the active :func:`log_context` into ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context_var.get()
        record.context = "".join(f"{key}={value} | " for key, value in context.items())
        return True


def setup_logging(
    level: int | str = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route ``queryassist`` loggers to a rotating file and, optionally, stderr.

    Calling again without ``force`` keeps the existing configuration.
    """

    global _LOG_PATH
    level = _coerce_level(level)
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / "queryassist.log"

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    context_filter = LogContextFilter()
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    quiet_level = max(level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the log file configured by :func:`setup_logging`, if any."""

    return _LOG_PATH


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("QUERYASSIST_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()

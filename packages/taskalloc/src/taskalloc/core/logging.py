"""Logging helpers for allocation sessions."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional


LOG_LEVEL_ENV = "TASKALLOC_LOG_LEVEL"

_CONFIGURED = False
_FILE_HANDLERS: dict[str, logging.Handler] = {}
_LOG_FORMAT = "%(asctime)s,%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Optional[int] = None) -> int:
    """Explicit level, else ``TASKALLOC_LOG_LEVEL`` (name or number), else INFO."""
    if level is not None:
        return level
    raw = os.environ.get(LOG_LEVEL_ENV, "").strip()
    if not raw:
        return logging.INFO
    if raw.isdigit():
        return int(raw)
    named = logging.getLevelName(raw.upper())
    return named if isinstance(named, int) else logging.INFO


def configure_logging(level: Optional[int] = None) -> None:
    """Configure root logging once per process."""
    global _CONFIGURED
    resolved = resolve_level(level)
    if _CONFIGURED:
        logging.getLogger("taskalloc").setLevel(resolved)
        return
    logging.basicConfig(level=resolved, format=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    logging.getLogger("taskalloc").setLevel(resolved)
    _CONFIGURED = True


def add_file_handler(path: Path, level: Optional[int] = None) -> logging.Handler:
    """Mirror records to ``path``; calling twice for one path reuses the handler."""
    configure_logging(level=level)
    resolved = str(path.resolve())
    existing = _FILE_HANDLERS.get(resolved)
    if existing is not None:
        return existing
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(resolve_level(level))
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    logging.getLogger().addHandler(handler)
    _FILE_HANDLERS[resolved] = handler
    return handler


def remove_file_handler(path: Path) -> None:
    handler = _FILE_HANDLERS.pop(str(path.resolve()), None)
    if handler is None:
        return
    logging.getLogger().removeHandler(handler)
    handler.close()


@contextmanager
def run_log(path: Optional[Path], level: Optional[int] = None) -> Iterator[None]:
    """Attach a file handler for the duration of one run (no-op without a path)."""
    if path is None:
        configure_logging(level=level)
        yield
        return
    add_file_handler(path, level=level)
    try:
        yield
    finally:
        remove_file_handler(path)

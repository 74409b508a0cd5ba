"""Root logger setup for the study timer process.

Handlers are built from the ``logging.*`` config section: stdout unless
``logging.console`` is off, plus a size-rotated file when ``logging.file``
is set. Calling :func:`configure_logging` again swaps out the handlers it
installed earlier and leaves handlers added by anyone else in place.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, List, Union

if TYPE_CHECKING:
    from study_presence.presence.config import LoggingSettings

RECORD_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# The API middleware logs each request itself.
QUIET_LOGGERS = {"aiohttp.access": logging.WARNING}

_installed: List[logging.Handler] = []


def resolve_level(level: Union[int, str]) -> int:
    """Map ``"debug"``/``"INFO"``/``10`` to a numeric level."""
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")
    return numeric


def build_handlers(settings: "LoggingSettings") -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if settings.console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if settings.file is not None:
        path = Path(settings.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=settings.max_bytes,
                backupCount=settings.backups,
                encoding="utf-8",
            )
        )
    formatter = logging.Formatter(RECORD_FORMAT, DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(settings: "LoggingSettings") -> List[logging.Handler]:
    """Install handlers for ``settings`` on the root logger and return them."""
    level = resolve_level(settings.level)
    root = logging.getLogger()
    remove_installed_handlers()
    for handler in build_handlers(settings):
        root.addHandler(handler)
        _installed.append(handler)
    root.setLevel(level)
    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    return list(_installed)


def remove_installed_handlers() -> None:
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


__all__ = [
    "DATE_FORMAT",
    "QUIET_LOGGERS",
    "RECORD_FORMAT",
    "build_handlers",
    "configure_logging",
    "remove_installed_handlers",
    "resolve_level",
]

"""Component-prefixed loggers under the ``study_presence`` namespace.

Every record carries its component in the message text, so
``get_module_logger("Capture").info("Camera enabled")`` reads
``[Capture] Camera enabled`` whichever handler formats it.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

ROOT_LOGGER_NAME = "study_presence"
FALLBACK_COMPONENT = "Core"


def qualified_name(name: Optional[str]) -> str:
    """``"Capture"`` becomes ``"study_presence.Capture"``; qualified names pass through."""
    if not name or name == ROOT_LOGGER_NAME:
        return ROOT_LOGGER_NAME
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return name
    return f"{ROOT_LOGGER_NAME}.{name}"


def component_of(logger_name: str) -> str:
    head, _, tail = logger_name.partition(".")
    if head == ROOT_LOGGER_NAME:
        return tail or FALLBACK_COMPONENT
    return logger_name or FALLBACK_COMPONENT


class StructuredLogger(logging.LoggerAdapter):
    """Adapter that tags each message with ``[Component]``.

    Arguments are merged into the message before the record is created; a
    format string that does not match its arguments keeps them as
    ``| args=...`` instead of failing inside a handler.
    """

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        super().__init__(logger, {})
        self.component = component or component_of(logger.name)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<StructuredLogger {self.logger.name} [{self.component}]>"

    def _render(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} | args={' '.join(str(arg) for arg in args)}"
        tag = f"[{self.component}]"
        return text if text.startswith(tag) else f"{tag} {text}"

    def log(self, level: int, msg: object, *args, **kwargs) -> None:
        # debug/info/warning/error/exception all funnel through here.
        if not self.isEnabledFor(level):
            return
        kwargs.setdefault("stacklevel", 2)
        self.logger.log(level, self._render(msg, args), **kwargs)

    def getChild(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(self.logger.getChild(suffix), f"{self.component}.{suffix}")


LoggerLike = Union[StructuredLogger, logging.Logger, logging.LoggerAdapter, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Adapt whatever logger a caller injected; None gets a fresh module logger."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        return StructuredLogger(logger.logger, component)
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(qualified_name(name)))


__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "component_of",
    "ensure_structured_logger",
    "get_module_logger",
    "qualified_name",
]

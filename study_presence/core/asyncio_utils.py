"""Asyncio helpers for background tasks that must not lose their exceptions."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import Any, Awaitable, Callable, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def _task_label(task: asyncio.Task[Any], context: Optional[str]) -> str:
    if context:
        return context
    return task.get_name() or "background task"


def add_task_exception_logger(
    task: asyncio.Task[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Retrieve and log the exception of ``task`` when it finishes."""
    task_logger = ensure_structured_logger(logger, fallback_name="asyncio")

    def _done(done_task: asyncio.Task[Any]) -> None:
        if done_task.cancelled():
            return
        exc = done_task.exception()
        if exc is not None:
            task_logger.error(
                "Unhandled exception in %s",
                _task_label(done_task, context),
                exc_info=exc,
            )

    task.add_done_callback(_done)
    return task


def create_logged_task(
    coro: Awaitable[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> asyncio.Task[Any]:
    """Create a named task whose exception is logged instead of lost."""
    task = asyncio.get_running_loop().create_task(coro, name=context)
    add_task_exception_logger(task, logger=logger, context=context)
    return task


async def cancel_and_wait(task: Optional[asyncio.Task[Any]]) -> None:
    """Cancel ``task`` (if still running) and wait for it to unwind."""
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


def call_soon_logged(
    callback: Callable[[], Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
) -> None:
    """Run ``callback`` on the next loop iteration, outside the caller's frame.

    Coroutine results are scheduled as logged tasks; exceptions are logged
    rather than propagated.
    """
    log = ensure_structured_logger(logger, fallback_name="asyncio")
    loop = asyncio.get_running_loop()

    def _invoke() -> None:
        try:
            result = callback()
        except Exception:
            log.exception("Callback %s failed", context or callback)
            return
        if inspect.iscoroutine(result):
            create_logged_task(result, logger=log, context=context)

    loop.call_soon(_invoke)


__all__ = [
    "add_task_exception_logger",
    "call_soon_logged",
    "cancel_and_wait",
    "create_logged_task",
]

"""Network reachability badge state."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, Callable, Optional

from study_presence.core.asyncio_utils import cancel_and_wait, create_logged_task
from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger

from .models import CONNECTIVITY_OFFLINE, CONNECTIVITY_ONLINE

ReachabilityProbe = Callable[[], Awaitable[bool]]
ConnectivityListener = Callable[[bool], None]


def tcp_probe(host: str, port: int, timeout: float = 3.0) -> ReachabilityProbe:
    """Probe that reports online when a TCP connection to ``host:port`` opens in time."""

    async def _probe() -> bool:
        try:
            _reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return True

    return _probe


class ConnectivityMonitor:
    """Mirrors the reachability signal into an ``online`` flag.

    ``start()`` reads the signal immediately, then polls it every
    ``interval_s``. Hosts with a push-style platform signal can call
    :meth:`notify` instead. Listeners fire on transitions only.
    """

    def __init__(
        self,
        probe: ReachabilityProbe,
        *,
        interval_s: float = 10.0,
        logger: LoggerLike = None,
    ) -> None:
        self._probe = probe
        self._interval_s = interval_s
        self._logger = ensure_structured_logger(logger, fallback_name="Connectivity")
        self._online = True
        self._listeners: list[ConnectivityListener] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def online(self) -> bool:
        return self._online

    @property
    def label(self) -> str:
        return CONNECTIVITY_ONLINE if self._online else CONNECTIVITY_OFFLINE

    @property
    def running(self) -> bool:
        return self._task is not None

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def start(self) -> None:
        if self._task is not None:
            return
        self.notify(await self._read())
        self._task = create_logged_task(self._poll(), logger=self._logger, context="connectivity-poll")

    async def stop(self) -> None:
        task, self._task = self._task, None
        await cancel_and_wait(task)

    def notify(self, online: bool) -> None:
        """Record a platform online/offline signal."""
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        if online:
            self._logger.info("Network back online")
        else:
            self._logger.warning("Network offline; sync may be delayed")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                self._logger.exception("Connectivity listener failed")

    async def _read(self) -> bool:
        try:
            return bool(await self._probe())
        except Exception as exc:
            self._logger.debug("Reachability probe raised %s; treating as offline", exc)
            return False

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            self.notify(await self._read())


__all__ = ["ConnectivityMonitor", "ReachabilityProbe", "tcp_probe"]

"""Elapsed-time counter gated by presence."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from study_presence.core.asyncio_utils import call_soon_logged, create_logged_task
from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger

from .capture import CaptureManager
from .config import TimerSettings
from .models import (
    PRESENCE_LABELS,
    STATUS_IDLE,
    STATUS_PAUSED,
    STATUS_STUDYING,
    TOGGLE_LABEL_RUNNING,
    TOGGLE_LABEL_STOPPED,
    PresenceSample,
    TimerPhase,
)
from .sampler import PresenceSampler, SamplingLoopHandle

TickCallback = Callable[[], Any]


# ---------------------------------------------------------------------------
# Pure derivations


def format_elapsed(seconds: int) -> str:
    """``MM:SS`` with unbounded minutes, e.g. 3725 -> ``62:05``."""
    seconds = max(0, int(seconds))
    minutes, remainder = divmod(seconds, 60)
    return f"{minutes:02d}:{remainder:02d}"


def is_effective_active(run_requested: bool, camera_enabled: bool, presence: PresenceSample) -> bool:
    return run_requested and (not camera_enabled or presence is PresenceSample.PRESENT)


def status_label(run_requested: bool, camera_enabled: bool, presence: PresenceSample) -> str:
    if is_effective_active(run_requested, camera_enabled, presence):
        return STATUS_STUDYING
    if camera_enabled and run_requested:
        return STATUS_PAUSED
    return STATUS_IDLE


def presence_label(camera_enabled: bool, presence: PresenceSample) -> Optional[str]:
    """Camera sub-label; None while the camera is off."""
    if not camera_enabled:
        return None
    return PRESENCE_LABELS[presence]


def toggle_label(run_requested: bool) -> str:
    return TOGGLE_LABEL_RUNNING if run_requested else TOGGLE_LABEL_STOPPED


# ---------------------------------------------------------------------------
# Controller


class TimerController:
    """Owns the elapsed-seconds counter and the start/stop/reset controls.

    The one-second ticker runs only while :attr:`effective_active` is true;
    it is started and cancelled on transitions of that derived flag, never on
    ``run_requested`` alone, so a paused run does not accumulate time.
    """

    def __init__(
        self,
        capture: CaptureManager,
        sampler: PresenceSampler,
        settings: TimerSettings = TimerSettings(),
        *,
        on_tick: Optional[TickCallback] = None,
        logger: LoggerLike = None,
    ) -> None:
        self._capture = capture
        self._sampler = sampler
        self._settings = settings
        self._on_tick = on_tick
        self._logger = ensure_structured_logger(logger, fallback_name="Timer")

        self._elapsed = 0
        self._run_requested = False
        self._intent = 0
        self._sampling: Optional[SamplingLoopHandle] = None
        self._ticker: Optional[asyncio.Task] = None
        self._closed = False
        self._unsubscribe = sampler.add_listener(self._on_presence)

    # ------------------------------------------------------------------
    # State

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def formatted_elapsed(self) -> str:
        return format_elapsed(self._elapsed)

    @property
    def run_requested(self) -> bool:
        return self._run_requested

    @property
    def camera_enabled(self) -> bool:
        return self._capture.active

    @property
    def presence(self) -> PresenceSample:
        return self._sampler.latest

    @property
    def effective_active(self) -> bool:
        return is_effective_active(self._run_requested, self.camera_enabled, self.presence)

    @property
    def phase(self) -> TimerPhase:
        if not self._run_requested:
            return TimerPhase.STOPPED
        if self.camera_enabled:
            return TimerPhase.RUNNING_GATED
        return TimerPhase.RUNNING_UNCONSTRAINED

    @property
    def status_label(self) -> str:
        return status_label(self._run_requested, self.camera_enabled, self.presence)

    @property
    def ticking(self) -> bool:
        return self._ticker is not None

    # ------------------------------------------------------------------
    # Controls

    async def toggle(self) -> None:
        if self._run_requested:
            self.toggle_stop()
        else:
            await self.toggle_start()

    async def toggle_start(self, *, enable_camera: bool = True) -> None:
        """Request a run, acquiring the camera first when it is off.

        A failed acquisition does not block the run; the timer then ticks
        unconstrained and the error is left on the capture manager.
        """
        if self._closed or self._run_requested:
            return
        self._intent += 1
        intent = self._intent

        if enable_camera and not self._capture.active:
            enabled = await self._capture.enable()
            if intent != self._intent or self._closed:
                # A stop arrived while the device request was pending.
                return
            if not enabled:
                self._logger.warning(
                    "Running without presence gating: %s",
                    self._capture.error or "camera unavailable",
                )

        self._run_requested = True
        self._logger.info("Timer started (%s)", self.phase.value)
        self.reconcile()

    def toggle_stop(self) -> None:
        """Clear run intent, release the camera and forget the last sample."""
        self._intent += 1
        was_running = self._run_requested
        self._run_requested = False
        self.disable_camera()
        if was_running:
            self._logger.info("Timer stopped at %s", self.formatted_elapsed)

    def disable_camera(self) -> None:
        """Release the camera; sampling stops before the tracks do."""
        self._release_sampling()
        self._capture.disable()
        self._sampler.clear()
        self.reconcile()

    def reset(self) -> None:
        self._elapsed = 0
        self._logger.info("Timer reset")

    def tick(self) -> bool:
        """Advance one second if effectively active. Returns True when counted."""
        if not self.effective_active:
            return False
        self._elapsed += 1
        if self._on_tick is not None:
            call_soon_logged(self._on_tick, logger=self._logger, context="tick-callback")
        return True

    # ------------------------------------------------------------------
    # Wiring

    def reconcile(self) -> None:
        """Bring the sampling loop and the ticker in line with current state."""
        if self._closed:
            return

        want_sampling = self._run_requested and self._capture.active
        if want_sampling and self._sampling is None:
            self._sampling = self._sampler.acquire_loop()
        elif not want_sampling and self._sampling is not None:
            self._release_sampling()

        active = self.effective_active
        if active and self._ticker is None:
            self._ticker = create_logged_task(
                self._tick_loop(),
                logger=self._logger,
                context="timer-ticker",
            )
            self._logger.debug("Ticker started")
        elif not active and self._ticker is not None:
            self._cancel_ticker()
            self._logger.debug("Ticker paused at %s", self.formatted_elapsed)

    def close(self) -> None:
        """Stop ticking and sampling; the controller is unusable afterwards."""
        self._closed = True
        self._intent += 1
        self._cancel_ticker()
        self._release_sampling()
        self._unsubscribe()

    def _on_presence(self, _sample: PresenceSample) -> None:
        self.reconcile()

    def _release_sampling(self) -> None:
        handle, self._sampling = self._sampling, None
        if handle is not None:
            handle.release()

    def _cancel_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.tick_interval_s)
            self.tick()


__all__ = [
    "TickCallback",
    "TimerController",
    "format_elapsed",
    "is_effective_active",
    "presence_label",
    "status_label",
    "toggle_label",
]

"""Periodic presence sampling over the borrowed camera stream."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import numpy as np

from study_presence.core.asyncio_utils import create_logged_task
from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger

from .analysis import analyze_frame, frame_is_ready
from .capability import Capability, handle_of
from .config import SamplerSettings
from .face_detection import FaceDetector
from .models import PresenceSample, SamplerPhase

FrameReader = Callable[[], Optional[np.ndarray]]
PresenceListener = Callable[[PresenceSample], None]


class SamplingLoopHandle:
    """Scoped ownership of a running sampling loop.

    ``release()`` runs the underlying teardown exactly once no matter how many
    exit paths call it. Also usable as a context manager.
    """

    __slots__ = ("_release_fn", "_released")

    def __init__(self, release_fn: Callable[[], None]) -> None:
        self._release_fn = release_fn
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._release_fn()

    def __enter__(self) -> "SamplingLoopHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class PresenceSampler:
    """Classifies presence from camera frames on a fixed period.

    The sampler never touches capture state; it only calls ``frame_reader``.
    Each loop acquisition bumps a generation counter and every result is
    checked against it before being applied, so a classification that
    finishes after the loop was released is dropped.
    """

    def __init__(
        self,
        frame_reader: FrameReader,
        face_detector: Capability[FaceDetector],
        settings: SamplerSettings = SamplerSettings(),
        *,
        logger: LoggerLike = None,
    ) -> None:
        self._frame_reader = frame_reader
        self._face_detector = face_detector
        self._settings = settings
        self._logger = ensure_structured_logger(logger, fallback_name="PresenceSampler")

        self._latest = PresenceSample.UNKNOWN
        self._phase = SamplerPhase.IDLE
        self._generation = 0
        self._handle: Optional[SamplingLoopHandle] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._listeners: list[PresenceListener] = []

    # ------------------------------------------------------------------
    # State

    @property
    def latest(self) -> PresenceSample:
        return self._latest

    @property
    def phase(self) -> SamplerPhase:
        return self._phase

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def face_detection_available(self) -> bool:
        return handle_of(self._face_detector) is not None

    def add_listener(self, listener: PresenceListener) -> Callable[[], None]:
        """Call ``listener`` whenever the classification changes. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def clear(self) -> None:
        """Forget the latest classification."""
        self._apply(PresenceSample.UNKNOWN)

    # ------------------------------------------------------------------
    # Loop lifecycle

    def acquire_loop(self) -> SamplingLoopHandle:
        """Enter SAMPLING: one immediate sample, then one every ``interval_s``."""
        if self._handle is not None:
            raise RuntimeError("sampling loop is already running")

        self._generation += 1
        generation = self._generation
        self._phase = SamplerPhase.SAMPLING
        self._loop_task = create_logged_task(
            self._run(generation),
            logger=self._logger,
            context="presence-sampler",
        )
        self._handle = SamplingLoopHandle(lambda: self._release_loop(generation))
        self._logger.debug("Sampling started (generation %d)", generation)
        return self._handle

    def _release_loop(self, generation: int) -> None:
        if generation == self._generation:
            self._generation += 1
        self._phase = SamplerPhase.IDLE
        self._handle = None
        for task in (self._loop_task, self._inflight):
            if task is not None and not task.done():
                task.cancel()
        self._loop_task = None
        self._inflight = None
        self._logger.debug("Sampling stopped (generation %d)", generation)

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            self._spawn_sample(generation)
            await asyncio.sleep(self._settings.interval_s)

    def _spawn_sample(self, generation: int) -> None:
        if self.in_flight:
            self._logger.debug("Previous sample still running; skipping this tick")
            return
        self._inflight = create_logged_task(
            self.sample_once(generation),
            logger=self._logger,
            context="presence-sample",
        )

    # ------------------------------------------------------------------
    # One sample

    async def sample_once(self, generation: Optional[int] = None) -> Optional[PresenceSample]:
        """Run one classification cycle.

        Returns the applied classification, or None when the frame was not
        ready yet or the result was discarded because the loop moved on.
        """
        if generation is None:
            generation = self._generation

        try:
            frame = self._frame_reader()
            if not frame_is_ready(frame):
                self._logger.debug("Frame not ready; keeping %s", self._latest.value)
                return None

            face_count: Optional[int] = None
            detector = handle_of(self._face_detector)
            if detector is not None:
                face_count = len(await detector.detect(frame))

            result, stats = analyze_frame(
                frame,
                face_count,
                size=self._settings.analysis_size,
                dark_threshold=self._settings.dark_threshold,
                flatness_threshold=self._settings.flatness_threshold,
            )
            self._logger.debug(
                "Sample: mean=%.1f variance=%.1f faces=%s -> %s",
                stats.mean,
                stats.variance,
                "n/a" if face_count is None else face_count,
                result.value,
            )
        except Exception as exc:
            self._logger.warning("Presence detection failed; assuming not present: %s", exc)
            result = PresenceSample.ABSENT

        if generation != self._generation:
            self._logger.debug("Discarding sample from stale generation %d", generation)
            return None

        self._apply(result)
        return result

    def _apply(self, sample: PresenceSample) -> None:
        previous, self._latest = self._latest, sample
        if previous is sample:
            return
        self._logger.info("Presence %s -> %s", previous.value, sample.value)
        for listener in list(self._listeners):
            try:
                listener(sample)
            except Exception:
                self._logger.exception("Presence listener failed")


__all__ = ["FrameReader", "PresenceSampler", "SamplingLoopHandle"]

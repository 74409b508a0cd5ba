"""Camera device lifecycle: acquire, bind to a render surface, release."""

from __future__ import annotations

import asyncio
import os
import sys
import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

# MSMF hardware transforms make camera start-up very slow on Windows.
# See: https://github.com/opencv/opencv/issues/17687
if sys.platform == "win32":
    os.environ.setdefault("OPENCV_VIDEOIO_MSMF_ENABLE_HW_TRANSFORMS", "0")

import cv2
import numpy as np

from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger, get_module_logger

from .capability import Available, Capability, Unavailable, handle_of
from .errors import (
    CAMERA_ACCESS_FAILED,
    CAMERA_API_UNAVAILABLE,
    CapturePermissionError,
    CaptureUnavailableError,
)
from .models import CapturedFrame

logger = get_module_logger("Capture")


@dataclass(frozen=True, slots=True)
class VideoConstraints:
    device: int | str = 0
    resolution: tuple[int, int] = (640, 480)
    fps_hint: float = 15.0
    facing_mode: str = "user"


class MediaTrack(Protocol):
    @property
    def live(self) -> bool:
        ...

    def stop(self) -> None:
        ...


class MediaStream(Protocol):
    def get_tracks(self) -> Sequence[MediaTrack]:
        ...

    def latest_frame(self) -> Optional[np.ndarray]:
        ...


class MediaCaptureProvider(Protocol):
    async def request_video_stream(self, constraints: VideoConstraints) -> MediaStream:
        ...


class RenderSurface(Protocol):
    def attach(self, stream: MediaStream) -> None:
        ...

    def detach(self) -> None:
        ...

    async def play(self) -> None:
        ...


# ---------------------------------------------------------------------------
# OpenCV-backed provider


class OpenCVVideoTrack:
    """One ``cv2.VideoCapture`` device read by a daemon thread.

    The thread keeps only the newest frame; readers never block on the device.
    """

    def __init__(self, constraints: VideoConstraints) -> None:
        self._constraints = constraints
        self._cap: Optional[cv2.VideoCapture] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._lock = threading.Lock()
        self._latest: Optional[CapturedFrame] = None
        self._frame_number = 0
        self._actual_resolution = constraints.resolution

    @property
    def live(self) -> bool:
        return self._cap is not None

    @property
    def resolution(self) -> tuple[int, int]:
        return self._actual_resolution

    def open(self) -> None:
        """Open and configure the device. Blocking; call from a worker thread."""
        device = self._constraints.device
        if isinstance(device, str) and device.isdigit():
            device = int(device)

        start_time = time.perf_counter()
        if sys.platform == "win32":
            cap = cv2.VideoCapture(device, cv2.CAP_MSMF)
        else:
            cap = cv2.VideoCapture(device)
        logger.debug("cv2.VideoCapture(%s) took %.2f seconds", device, time.perf_counter() - start_time)

        if not cap.isOpened():
            cap.release()
            raise CaptureUnavailableError(f"Failed to open camera {device!r}")

        width, height = self._constraints.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        cap.set(cv2.CAP_PROP_FPS, self._constraints.fps_hint)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._actual_resolution = (
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        self._cap = cap
        logger.info(
            "Camera opened: device=%s, resolution=%dx%d, facing=%s",
            device,
            *self._actual_resolution,
            self._constraints.facing_mode,
        )

    def start(self) -> None:
        if self._running or self._cap is None:
            return
        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, name="camera-capture", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the reader thread and release the device. Safe to repeat."""
        self._running = False
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.debug("Camera track released after %d frames", self._frame_number)
        with self._lock:
            self._latest = None

    def latest(self) -> Optional[CapturedFrame]:
        with self._lock:
            return self._latest

    def _capture_loop(self) -> None:
        while self._running:
            cap = self._cap
            if cap is None:
                break
            ok, data = cap.read()
            if not ok or data is None:
                time.sleep(0.01)
                continue
            self._frame_number += 1
            frame = CapturedFrame(
                data=data,
                frame_number=self._frame_number,
                monotonic_time=time.perf_counter(),
                size=(data.shape[1], data.shape[0]),
            )
            with self._lock:
                self._latest = frame


class OpenCVVideoStream:
    def __init__(self, track: OpenCVVideoTrack) -> None:
        self._track = track

    def get_tracks(self) -> Sequence[OpenCVVideoTrack]:
        return (self._track,)

    def latest_frame(self) -> Optional[np.ndarray]:
        frame = self._track.latest()
        return None if frame is None else frame.data


class OpenCVCaptureProvider:
    async def request_video_stream(self, constraints: VideoConstraints) -> OpenCVVideoStream:
        track = OpenCVVideoTrack(constraints)
        try:
            await asyncio.to_thread(track.open)
        except PermissionError as exc:
            raise CapturePermissionError(str(exc)) from exc
        track.start()
        return OpenCVVideoStream(track)


def resolve_media_capture() -> Capability[MediaCaptureProvider]:
    """Resolve the media-capture capability once, at startup."""
    if not hasattr(cv2, "VideoCapture"):
        return Unavailable("OpenCV was built without videoio support")
    return Available(OpenCVCaptureProvider())


# ---------------------------------------------------------------------------
# Capture manager


@dataclass(slots=True)
class CaptureSession:
    stream: MediaStream
    surface: Optional[RenderSurface] = None
    active: bool = True

    def live_track_count(self) -> int:
        return sum(1 for track in self.stream.get_tracks() if track.live)


def stop_all_tracks(stream: MediaStream, log: LoggerLike = None) -> None:
    """Stop every track of ``stream``; one failing track does not keep the rest alive."""
    for track in stream.get_tracks():
        try:
            track.stop()
        except Exception:
            ensure_structured_logger(log, fallback_name="Capture").exception("Failed to stop camera track")


class CaptureManager:
    """Owns the single camera session.

    Errors never propagate out of :meth:`enable`; they are surfaced through
    :attr:`error` as a user-facing string.
    """

    def __init__(
        self,
        provider: Capability[MediaCaptureProvider],
        constraints: VideoConstraints = VideoConstraints(),
        *,
        logger: LoggerLike = None,
    ) -> None:
        self._provider = provider
        self._constraints = constraints
        self._logger = ensure_structured_logger(logger, fallback_name="Capture")
        self._session: Optional[CaptureSession] = None
        self._surface: Optional[RenderSurface] = None
        self._error: Optional[str] = None
        self._generation = 0
        self._pending: Optional[asyncio.Future[bool]] = None
        self._pending_generation = 0

    @property
    def active(self) -> bool:
        return self._session is not None and self._session.active

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def surface(self) -> Optional[RenderSurface]:
        return self._surface

    def live_track_count(self) -> int:
        return 0 if self._session is None else self._session.live_track_count()

    def current_frame(self) -> Optional[np.ndarray]:
        if self._session is None:
            return None
        return self._session.stream.latest_frame()

    async def enable(self) -> bool:
        """Acquire the camera. Returns True when a session is active afterwards."""
        if self.active:
            return True
        if (
            self._pending is None
            or self._pending.done()
            or self._pending_generation != self._generation
        ):
            # A request from before the last disable() is doomed; start a fresh one.
            self._pending_generation = self._generation
            self._pending = asyncio.ensure_future(self._acquire(self._generation))
        # Concurrent callers of the same generation share one acquisition.
        return await asyncio.shield(self._pending)

    async def _acquire(self, generation: int) -> bool:
        provider = handle_of(self._provider)
        if provider is None:
            self._logger.warning("Camera API unavailable: %s", self._provider.reason)
            self._error = CAMERA_API_UNAVAILABLE
            return False

        try:
            stream = await provider.request_video_stream(self._constraints)
        except Exception as exc:
            self._logger.error("Error enabling camera: %s", exc)
            if generation == self._generation:
                self._error = CAMERA_ACCESS_FAILED
            return False

        if generation != self._generation:
            # disable() ran while the device request was pending.
            self._logger.info("Discarding camera stream acquired after disable")
            stop_all_tracks(stream, self._logger)
            return False

        self._session = CaptureSession(stream=stream)
        self._error = None
        self._logger.info("Camera enabled")
        if self._surface is not None:
            await self._bind(self._session, self._surface)
        return self.active

    async def bind_to_surface(self, surface: RenderSurface) -> None:
        """Remember ``surface`` and attach the live stream to it, if there is one."""
        self._surface = surface
        if self._session is not None:
            await self._bind(self._session, surface)

    async def _bind(self, session: CaptureSession, surface: RenderSurface) -> None:
        session.surface = surface
        surface.attach(session.stream)
        try:
            await surface.play()
        except Exception as exc:
            self._logger.warning("Video playback was blocked: %s", exc)

    def disable(self) -> bool:
        """Release every track and detach the surface. Returns False when already disabled."""
        self._generation += 1
        session, self._session = self._session, None
        if session is None:
            return False
        session.active = False
        stop_all_tracks(session.stream, self._logger)
        if session.surface is not None:
            session.surface.detach()
        self._logger.info("Camera disabled")
        return True


__all__ = [
    "CaptureManager",
    "CaptureSession",
    "MediaCaptureProvider",
    "MediaStream",
    "MediaTrack",
    "OpenCVCaptureProvider",
    "OpenCVVideoStream",
    "OpenCVVideoTrack",
    "RenderSurface",
    "VideoConstraints",
    "resolve_media_capture",
    "stop_all_tracks",
]

"""The study presence component: connectivity, capture, sampling and timer wired together."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger

from .capability import Capability
from .capture import CaptureManager, MediaCaptureProvider, RenderSurface, VideoConstraints, resolve_media_capture
from .config import PresenceConfig
from .connectivity import ConnectivityMonitor, ReachabilityProbe, tcp_probe
from .face_detection import FaceDetector, resolve_face_detector
from .models import CONNECTIVITY_ONLINE
from .sampler import PresenceSampler
from .timer import TickCallback, TimerController, presence_label, toggle_label


@dataclass(frozen=True, slots=True)
class PresenceSnapshot:
    """Everything a hosting UI needs to render the timer card."""

    elapsed_seconds: int
    elapsed: str
    status: str
    run_requested: bool
    effective_active: bool
    timer_phase: str
    toggle_label: str
    camera_enabled: bool
    camera_error: Optional[str]
    presence: str
    presence_label: Optional[str]
    sampler_phase: str
    face_detection: bool
    online: bool
    connectivity_label: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StudyPresence:
    """Single logical component exposed to the hosting UI.

    Capabilities are resolved by the caller (or :meth:`from_config`) and
    injected. Nothing raised by collaborators escapes the public methods;
    failures end up in :attr:`camera_error`, the presence classification or
    the log.
    """

    def __init__(
        self,
        config: PresenceConfig,
        *,
        media_capture: Capability[MediaCaptureProvider],
        face_detector: Capability[FaceDetector],
        reachability_probe: Optional[ReachabilityProbe] = None,
        surface: Optional[RenderSurface] = None,
        on_tick: Optional[TickCallback] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.config = config
        self._logger = ensure_structured_logger(logger, fallback_name="StudyPresence")
        self._surface = surface
        self._started = False
        self._closed = False

        capture_cfg = config.capture
        self.capture = CaptureManager(
            media_capture,
            VideoConstraints(
                device=capture_cfg.device,
                resolution=capture_cfg.resolution,
                fps_hint=capture_cfg.fps_hint,
                facing_mode=capture_cfg.facing_mode,
            ),
            logger=self._logger.getChild("Capture"),
        )
        self.sampler = PresenceSampler(
            self.capture.current_frame,
            face_detector,
            config.sampler,
            logger=self._logger.getChild("Sampler"),
        )
        self.timer = TimerController(
            self.capture,
            self.sampler,
            config.timer,
            on_tick=on_tick,
            logger=self._logger.getChild("Timer"),
        )
        self.connectivity: Optional[ConnectivityMonitor] = None
        if reachability_probe is not None:
            self.connectivity = ConnectivityMonitor(
                reachability_probe,
                interval_s=config.connectivity.interval_s,
                logger=self._logger.getChild("Connectivity"),
            )

        if not self.sampler.face_detection_available:
            # Lens-covered heuristic only: an uncovered camera always counts as present.
            self._logger.warning("Face detection unavailable; presence gating only detects a covered camera")

    @classmethod
    def from_config(
        cls,
        config: PresenceConfig,
        *,
        surface: Optional[RenderSurface] = None,
        on_tick: Optional[TickCallback] = None,
        logger: LoggerLike = None,
    ) -> "StudyPresence":
        """Resolve platform capabilities once and build the component."""
        log = ensure_structured_logger(logger, fallback_name="StudyPresence")
        probe = None
        if config.connectivity.enabled:
            probe = tcp_probe(
                config.connectivity.probe_host,
                config.connectivity.probe_port,
                config.connectivity.timeout_s,
            )
        return cls(
            config,
            media_capture=resolve_media_capture(),
            face_detector=resolve_face_detector(config.sampler.face_detection, logger=log),
            reachability_probe=probe,
            surface=surface,
            on_tick=on_tick,
            logger=log,
        )

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self) -> None:
        if self._started or self._closed:
            return
        self._started = True
        if self.connectivity is not None:
            await self.connectivity.start()
        if self._surface is not None:
            await self.capture.bind_to_surface(self._surface)
        if self.config.timer.autostart:
            await self.timer.toggle_start(enable_camera=False)
        self._logger.info("Study presence started")

    def teardown(self) -> None:
        """Synchronously cancel sampling and ticking and release the camera."""
        if self._closed:
            return
        self._closed = True
        self.timer.close()
        self.capture.disable()

    async def close(self) -> None:
        self.teardown()
        if self.connectivity is not None:
            await self.connectivity.stop()
        self._logger.info("Study presence closed")

    async def __aenter__(self) -> "StudyPresence":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Controls

    async def toggle(self) -> None:
        if not self._closed:
            await self.timer.toggle()

    async def start_timer(self) -> None:
        if not self._closed:
            await self.timer.toggle_start()

    def stop_timer(self) -> None:
        if not self._closed:
            self.timer.toggle_stop()

    def reset(self) -> None:
        self.timer.reset()

    async def enable_camera(self) -> bool:
        """Acquire the camera without changing run intent."""
        if self._closed:
            return False
        enabled = await self.capture.enable()
        self.timer.reconcile()
        return enabled

    def disable_camera(self) -> None:
        """Release the camera; a requested run continues unconstrained."""
        if self._closed:
            return
        self.timer.disable_camera()

    # ------------------------------------------------------------------
    # Observation

    @property
    def camera_error(self) -> Optional[str]:
        return self.capture.error

    @property
    def online(self) -> bool:
        return True if self.connectivity is None else self.connectivity.online

    def snapshot(self) -> PresenceSnapshot:
        timer = self.timer
        camera_enabled = timer.camera_enabled
        presence = timer.presence
        online = self.online
        return PresenceSnapshot(
            elapsed_seconds=timer.elapsed_seconds,
            elapsed=timer.formatted_elapsed,
            status=timer.status_label,
            run_requested=timer.run_requested,
            effective_active=timer.effective_active,
            timer_phase=timer.phase.value,
            toggle_label=toggle_label(timer.run_requested),
            camera_enabled=camera_enabled,
            camera_error=self.capture.error,
            presence=presence.value,
            presence_label=presence_label(camera_enabled, presence),
            sampler_phase=self.sampler.phase.value,
            face_detection=self.sampler.face_detection_available,
            online=online,
            connectivity_label=self.connectivity.label if self.connectivity is not None else CONNECTIVITY_ONLINE,
        )


__all__ = ["PresenceSnapshot", "StudyPresence"]

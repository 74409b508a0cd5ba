"""Presence-aware study timer component."""

from .capability import Available, Capability, Unavailable
from .capture import CaptureManager, CaptureSession, OpenCVCaptureProvider, VideoConstraints
from .component import PresenceSnapshot, StudyPresence
from .config import PresenceConfig, load_config, load_config_file
from .connectivity import ConnectivityMonitor, tcp_probe
from .models import PresenceSample, SamplerPhase, TimerPhase
from .sampler import PresenceSampler, SamplingLoopHandle
from .surface import SnapshotSurface
from .timer import TimerController, format_elapsed

__all__ = [
    "Available",
    "Capability",
    "CaptureManager",
    "CaptureSession",
    "ConnectivityMonitor",
    "OpenCVCaptureProvider",
    "PresenceConfig",
    "PresenceSample",
    "PresenceSampler",
    "PresenceSnapshot",
    "SamplerPhase",
    "SamplingLoopHandle",
    "SnapshotSurface",
    "StudyPresence",
    "TimerController",
    "TimerPhase",
    "Unavailable",
    "VideoConstraints",
    "format_elapsed",
    "load_config",
    "load_config_file",
    "tcp_probe",
]

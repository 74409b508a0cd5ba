"""State enums, frame container and user-facing labels."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np


class PresenceSample(Enum):
    """Latest presence classification. Only the most recent value is kept."""
    UNKNOWN = "unknown"  # before the first completed sample
    PRESENT = "present"
    ABSENT = "absent"


class SamplerPhase(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"


class TimerPhase(Enum):
    STOPPED = "stopped"
    RUNNING_UNCONSTRAINED = "running_unconstrained"  # camera disabled
    RUNNING_GATED = "running_gated"  # ticks only while PRESENT


@dataclass(frozen=True, slots=True)
class CapturedFrame:
    """Immutable video frame from a capture track."""

    data: np.ndarray  # BGR image data
    frame_number: int
    monotonic_time: float  # time.perf_counter()
    size: tuple[int, int]  # (width, height)


STATUS_STUDYING = "Studying"
STATUS_PAUSED = "Not studying – user not detected or camera covered"
STATUS_IDLE = "Not studying"

PRESENCE_LABELS = {
    PresenceSample.UNKNOWN: "Detecting...",
    PresenceSample.PRESENT: "Face detected",
    PresenceSample.ABSENT: "No face or camera covered",
}

TOGGLE_LABEL_RUNNING = "Stop"
TOGGLE_LABEL_STOPPED = "Start"

CONNECTIVITY_ONLINE = "Online"
CONNECTIVITY_OFFLINE = "Offline – progress sync paused until you reconnect"


__all__ = [
    "CONNECTIVITY_OFFLINE",
    "CONNECTIVITY_ONLINE",
    "CapturedFrame",
    "PRESENCE_LABELS",
    "PresenceSample",
    "STATUS_IDLE",
    "STATUS_PAUSED",
    "STATUS_STUDYING",
    "SamplerPhase",
    "TOGGLE_LABEL_RUNNING",
    "TOGGLE_LABEL_STOPPED",
    "TimerPhase",
]

"""Frame analysis and presence classification.

Pure functions only: nothing here touches the camera, the event loop or
timer state, so the policy can be exercised directly with synthetic frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import cv2
import numpy as np

from .models import PresenceSample

ANALYSIS_SIZE = (160, 90)  # (width, height)
DARK_THRESHOLD = 25.0  # mean luminance, 0-255 scale
FLATNESS_THRESHOLD = 50.0  # luminance variance


@dataclass(frozen=True, slots=True)
class LuminanceStats:
    mean: float
    variance: float


@dataclass(frozen=True, slots=True)
class Evidence:
    """Signals gathered for one sample.

    ``face_count`` is None when no face detector is available, which is
    different from a detector that found zero faces.
    """

    camera_covered: bool
    face_count: Optional[int] = None


@dataclass(frozen=True, slots=True)
class PresenceRule:
    name: str
    applies: Callable[[Evidence], bool]
    decide: Callable[[Evidence], PresenceSample]


# First matching rule wins.
DECISION_TABLE: tuple[PresenceRule, ...] = (
    PresenceRule(
        name="camera-covered",
        applies=lambda ev: ev.camera_covered,
        decide=lambda ev: PresenceSample.ABSENT,
    ),
    PresenceRule(
        name="face-detector",
        applies=lambda ev: ev.face_count is not None,
        decide=lambda ev: PresenceSample.PRESENT if ev.face_count > 0 else PresenceSample.ABSENT,
    ),
    # No detector and the lens is uncovered: let the timer run.
    PresenceRule(
        name="permissive-fallback",
        applies=lambda ev: True,
        decide=lambda ev: PresenceSample.PRESENT,
    ),
)


def frame_is_ready(frame: Optional[np.ndarray]) -> bool:
    """True when ``frame`` holds decodable pixel data with non-zero dimensions."""
    if frame is None or not isinstance(frame, np.ndarray):
        return False
    if frame.ndim not in (2, 3):
        return False
    height, width = frame.shape[:2]
    return height > 0 and width > 0


def downscale(frame: np.ndarray, size: tuple[int, int] = ANALYSIS_SIZE) -> np.ndarray:
    """Resize ``frame`` to the fixed analysis raster (``size`` is width, height)."""
    width, height = size
    if frame.shape[1] == width and frame.shape[0] == height:
        return frame
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)


def luminance(image: np.ndarray) -> np.ndarray:
    """Per-pixel luminance as the unweighted mean of the three colour channels."""
    pixels = image.astype(np.float64, copy=False)
    if pixels.ndim == 2:
        return pixels
    return pixels[..., :3].mean(axis=2)


def luminance_stats(image: np.ndarray) -> LuminanceStats:
    """Mean and population variance of the luminance over all pixels."""
    lum = luminance(image)
    mean = float(lum.mean())
    mean_sq = float(np.square(lum).mean())
    # E[x^2] - E[x]^2 can dip a hair below zero on flat frames.
    variance = max(mean_sq - mean * mean, 0.0)
    return LuminanceStats(mean=mean, variance=variance)


def is_camera_covered(
    stats: LuminanceStats,
    dark_threshold: float = DARK_THRESHOLD,
    flatness_threshold: float = FLATNESS_THRESHOLD,
) -> bool:
    """A covered lens gives a very dark or almost textureless image."""
    return stats.mean < dark_threshold or stats.variance < flatness_threshold


def matching_rule(
    evidence: Evidence,
    table: Sequence[PresenceRule] = DECISION_TABLE,
) -> PresenceRule:
    for rule in table:
        if rule.applies(evidence):
            return rule
    raise LookupError("decision table has no rule for %r" % (evidence,))


def classify(
    evidence: Evidence,
    table: Sequence[PresenceRule] = DECISION_TABLE,
) -> PresenceSample:
    return matching_rule(evidence, table).decide(evidence)


def analyze_frame(
    frame: np.ndarray,
    face_count: Optional[int] = None,
    *,
    size: tuple[int, int] = ANALYSIS_SIZE,
    dark_threshold: float = DARK_THRESHOLD,
    flatness_threshold: float = FLATNESS_THRESHOLD,
) -> tuple[PresenceSample, LuminanceStats]:
    """Run steps 2-5 of a sample on an already-ready frame."""
    stats = luminance_stats(downscale(frame, size))
    covered = is_camera_covered(stats, dark_threshold, flatness_threshold)
    return classify(Evidence(camera_covered=covered, face_count=face_count)), stats


__all__ = [
    "ANALYSIS_SIZE",
    "DARK_THRESHOLD",
    "DECISION_TABLE",
    "Evidence",
    "FLATNESS_THRESHOLD",
    "LuminanceStats",
    "PresenceRule",
    "analyze_frame",
    "classify",
    "downscale",
    "frame_is_ready",
    "is_camera_covered",
    "luminance",
    "luminance_stats",
    "matching_rule",
]

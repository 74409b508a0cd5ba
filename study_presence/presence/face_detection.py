"""Optional face-detection capability backed by OpenCV Haar cascades."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Protocol, Sequence

import cv2
import numpy as np

from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger

from .capability import Available, Capability, Unavailable

FRONTAL_FACE_CASCADE = "haarcascade_frontalface_default.xml"

FaceBox = tuple[int, int, int, int]  # x, y, width, height


class FaceDetector(Protocol):
    async def detect(self, frame: np.ndarray) -> Sequence[FaceBox]:
        ...


class HaarFaceDetector:
    """Counts frontal faces with an OpenCV cascade classifier.

    Detection runs in a worker thread so the event loop keeps ticking while
    a frame is being scanned. ``fast_mode`` trades recall for speed with a
    coarser scale pyramid, ``max_faces`` truncates the result.
    """

    def __init__(
        self,
        cascade_path: Optional[Path] = None,
        *,
        fast_mode: bool = True,
        max_faces: int = 1,
        min_size: tuple[int, int] = (40, 40),
    ) -> None:
        path = cascade_path or default_cascade_path()
        if path is None:
            raise RuntimeError("OpenCV cascade data is not installed")
        self._classifier = cv2.CascadeClassifier(str(path))
        if self._classifier.empty():
            raise RuntimeError(f"Failed to load Haar cascade from {path}")
        self._scale_factor = 1.2 if fast_mode else 1.1
        self._min_neighbors = 5
        self._max_faces = max_faces
        self._min_size = min_size

    async def detect(self, frame: np.ndarray) -> Sequence[FaceBox]:
        return await asyncio.to_thread(self._detect_sync, frame)

    def _detect_sync(self, frame: np.ndarray) -> list[FaceBox]:
        gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self._classifier.detectMultiScale(
            gray,
            scaleFactor=self._scale_factor,
            minNeighbors=self._min_neighbors,
            minSize=self._min_size,
        )
        boxes = [tuple(int(v) for v in face) for face in faces]
        if self._max_faces > 0:
            boxes = boxes[: self._max_faces]
        return boxes


def default_cascade_path() -> Optional[Path]:
    data = getattr(cv2, "data", None)
    if data is None:
        return None
    path = Path(data.haarcascades) / FRONTAL_FACE_CASCADE
    return path if path.exists() else None


def resolve_face_detector(
    enabled: bool = True,
    *,
    cascade_path: Optional[Path] = None,
    logger: LoggerLike = None,
) -> Capability[FaceDetector]:
    """Resolve the face-detection capability once, at startup."""
    log = ensure_structured_logger(logger, fallback_name="FaceDetection")
    if not enabled:
        log.info("Face detection disabled by configuration")
        return Unavailable("disabled by configuration")
    if not hasattr(cv2, "CascadeClassifier"):
        log.warning("Face detection unavailable: OpenCV built without objdetect")
        return Unavailable("OpenCV was built without objdetect support")
    try:
        detector = HaarFaceDetector(cascade_path)
    except (RuntimeError, cv2.error) as exc:
        log.warning("Face detection unavailable: %s", exc)
        return Unavailable(str(exc))
    log.debug("Face detection available (Haar cascade)")
    return Available(detector)


__all__ = [
    "FaceBox",
    "FaceDetector",
    "HaarFaceDetector",
    "default_cascade_path",
    "resolve_face_detector",
]

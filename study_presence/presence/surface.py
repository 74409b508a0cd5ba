"""Preview surface serving JPEG snapshots of the bound stream."""

from __future__ import annotations

from typing import Optional

import cv2

from study_presence.core.logging_utils import get_module_logger

from .analysis import frame_is_ready
from .capture import MediaStream
from .config import DEFAULT_PREVIEW_JPEG_QUALITY
from .errors import PlaybackError

logger = get_module_logger("Preview")


class SnapshotSurface:
    """Render surface for the HTTP preview endpoint.

    Playback only marks the surface as playing; frames are pulled from the
    stream when a snapshot is requested, so detection never depends on the
    preview.
    """

    def __init__(self, jpeg_quality: int = DEFAULT_PREVIEW_JPEG_QUALITY) -> None:
        self._jpeg_quality = max(1, min(100, int(jpeg_quality)))
        self._stream: Optional[MediaStream] = None
        self._playing = False

    @property
    def stream(self) -> Optional[MediaStream]:
        return self._stream

    @property
    def playing(self) -> bool:
        return self._playing

    def attach(self, stream: MediaStream) -> None:
        self._stream = stream
        self._playing = False

    def detach(self) -> None:
        self._stream = None
        self._playing = False

    async def play(self) -> None:
        stream = self._stream
        if stream is None:
            raise PlaybackError("no stream attached")
        if not any(track.live for track in stream.get_tracks()):
            raise PlaybackError("attached stream has no live tracks")
        self._playing = True
        logger.debug("Preview playing")

    def snapshot_jpeg(self) -> Optional[bytes]:
        """Encode the stream's newest frame, or None when nothing can be shown."""
        if not self._playing or self._stream is None:
            return None
        frame = self._stream.latest_frame()
        if not frame_is_ready(frame):
            return None
        ok, encoded = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality])
        if not ok:
            logger.warning("JPEG encoding failed for preview frame")
            return None
        return encoded.tobytes()


__all__ = ["DEFAULT_PREVIEW_JPEG_QUALITY", "SnapshotSurface"]

"""Unit tests for the JPEG snapshot preview surface."""

import cv2
import numpy as np
import pytest

from study_presence.presence.errors import PlaybackError
from study_presence.presence.surface import SnapshotSurface
from tests.infrastructure.frames import checkerboard_frame, empty_frame
from tests.infrastructure.mocks import FakeStream


class TestSnapshotSurface:

    @pytest.mark.asyncio
    async def test_play_without_stream_fails(self):
        with pytest.raises(PlaybackError):
            await SnapshotSurface().play()

    @pytest.mark.asyncio
    async def test_play_with_stopped_tracks_fails(self):
        stream = FakeStream(checkerboard_frame())
        stream.tracks[0].stop()
        surface = SnapshotSurface()
        surface.attach(stream)
        with pytest.raises(PlaybackError):
            await surface.play()

    @pytest.mark.asyncio
    async def test_snapshot_is_decodable_jpeg(self):
        frame = checkerboard_frame()
        surface = SnapshotSurface(jpeg_quality=90)
        surface.attach(FakeStream(frame))
        await surface.play()

        payload = surface.snapshot_jpeg()
        assert payload is not None
        assert payload[:2] == b"\xff\xd8"
        decoded = cv2.imdecode(np.frombuffer(payload, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == frame.shape

    @pytest.mark.asyncio
    async def test_no_snapshot_until_playing_or_after_detach(self):
        surface = SnapshotSurface()
        surface.attach(FakeStream(checkerboard_frame()))
        assert surface.snapshot_jpeg() is None

        await surface.play()
        surface.detach()
        assert surface.playing is False
        assert surface.snapshot_jpeg() is None

    @pytest.mark.asyncio
    async def test_no_snapshot_for_empty_frame(self):
        surface = SnapshotSurface()
        surface.attach(FakeStream(empty_frame()))
        await surface.play()
        assert surface.snapshot_jpeg() is None

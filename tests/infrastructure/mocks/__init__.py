"""Fake collaborators for capture, face detection and reachability."""

from .media_mocks import (
    FakeCaptureProvider,
    FakeFaceDetector,
    FakeProbe,
    FakeStream,
    FakeSurface,
    FakeTrack,
)

__all__ = [
    "FakeCaptureProvider",
    "FakeFaceDetector",
    "FakeProbe",
    "FakeStream",
    "FakeSurface",
    "FakeTrack",
]

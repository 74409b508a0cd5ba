"""Pytest fixtures for API unit tests.

Builds a real PresenceAPIController over a StudyPresence wired to fake
capture, detection and reachability collaborators, plus an aiohttp app
that can be driven with TestClient.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

import pytest
from aiohttp import web

from study_presence.core.api.controller import PresenceAPIController, StatsRevision
from study_presence.core.api.server import create_app
from study_presence.presence.capability import Available
from study_presence.presence.component import StudyPresence
from study_presence.presence.config import PresenceConfig, SamplerSettings, TimerSettings
from study_presence.presence.surface import SnapshotSurface
from tests.infrastructure.frames import checkerboard_frame
from tests.infrastructure.mocks import FakeCaptureProvider, FakeFaceDetector, FakeProbe


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_config(autostart: bool = True) -> PresenceConfig:
    return PresenceConfig(
        sampler=SamplerSettings(interval_s=3600),
        timer=TimerSettings(tick_interval_s=3600, autostart=autostart),
    )


def make_controller(
    *,
    provider: Optional[FakeCaptureProvider] = None,
    face_count: int = 1,
    autostart: bool = True,
    online: bool = True,
) -> PresenceAPIController:
    provider = provider or FakeCaptureProvider(checkerboard_frame())
    surface = SnapshotSurface()
    stats = StatsRevision()
    presence = StudyPresence(
        make_config(autostart),
        media_capture=Available(provider),
        face_detector=Available(FakeFaceDetector(face_count)),
        reachability_probe=FakeProbe([online]),
        surface=surface,
        on_tick=stats.bump,
    )
    return PresenceAPIController(presence, stats=stats, surface=surface)


def create_test_app(controller: PresenceAPIController, localhost_only: bool = False) -> web.Application:
    """Create an aiohttp app for testing with the given controller."""
    return create_app(controller, localhost_only=localhost_only)


@pytest.fixture
def controller_factory():
    return make_controller


__all__ = [
    "create_test_app",
    "make_config",
    "make_controller",
    "run_async",
]

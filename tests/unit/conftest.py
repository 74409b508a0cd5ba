"""Unit test fixtures: fast, isolated, no camera or network.

Provides factories that wire the presence collaborators to fakes with
hour-long sample and tick intervals, so tests drive sampling and ticking
explicitly instead of waiting on timers.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest
import pytest_asyncio

from study_presence.presence.capability import Available, Unavailable
from study_presence.presence.capture import CaptureManager
from study_presence.presence.config import PresenceConfig, SamplerSettings, TimerSettings
from study_presence.presence.sampler import PresenceSampler
from study_presence.presence.timer import TimerController
from tests.infrastructure.mocks import FakeCaptureProvider, FakeFaceDetector

SLOW_INTERVAL_S = 3600.0


@pytest.fixture
def sampler_settings() -> SamplerSettings:
    return SamplerSettings(interval_s=SLOW_INTERVAL_S)


@pytest.fixture
def timer_settings() -> TimerSettings:
    return TimerSettings(tick_interval_s=SLOW_INTERVAL_S, autostart=False)


@pytest.fixture
def slow_config() -> PresenceConfig:
    """Defaults with sampling and ticking slowed to a crawl."""
    return PresenceConfig(
        sampler=SamplerSettings(interval_s=SLOW_INTERVAL_S),
        timer=TimerSettings(tick_interval_s=SLOW_INTERVAL_S, autostart=True),
    )


class TimerRig:
    """Capture manager, sampler and timer wired to fakes."""

    def __init__(
        self,
        provider: Optional[FakeCaptureProvider],
        detector: Optional[FakeFaceDetector],
        sampler_settings: SamplerSettings,
        timer_settings: TimerSettings,
        on_tick=None,
    ):
        self.provider = provider
        self.detector = detector
        self.capture = CaptureManager(Available(provider) if provider is not None else Unavailable())
        self.sampler = PresenceSampler(
            self.capture.current_frame,
            Available(detector) if detector is not None else Unavailable(),
            sampler_settings,
        )
        self.timer = TimerController(self.capture, self.sampler, timer_settings, on_tick=on_tick)

    @property
    def stream(self):
        return None if self.provider is None else self.provider.last_stream


@pytest_asyncio.fixture
async def make_rig(sampler_settings, timer_settings):
    rigs = []

    def _make(frame=None, face_count: Optional[int] = 1, *, camera: bool = True, on_tick=None, gate=None):
        provider = FakeCaptureProvider(frame, gate=gate) if camera else None
        detector = FakeFaceDetector(face_count) if face_count is not None else None
        rig = TimerRig(provider, detector, sampler_settings, timer_settings, on_tick=on_tick)
        rigs.append(rig)
        return rig

    yield _make

    for rig in rigs:
        rig.timer.close()
        rig.capture.disable()
    await asyncio.sleep(0)

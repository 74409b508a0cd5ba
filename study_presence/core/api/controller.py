"""API Controller - thin async facade over the study presence component."""

from __future__ import annotations

from typing import Any, Dict, Optional

from study_presence import __version__
from study_presence.presence.component import StudyPresence
from study_presence.presence.surface import SnapshotSurface


class StatsRevision:
    """Counter bumped once per counted second.

    Dashboards poll it and refresh their aggregate statistics when it moves.
    """

    def __init__(self) -> None:
        self.value = 0

    def bump(self) -> None:
        self.value += 1


class PresenceAPIController:
    """Translates HTTP actions into component calls and returns JSON-ready dicts."""

    def __init__(
        self,
        presence: StudyPresence,
        *,
        stats: Optional[StatsRevision] = None,
        surface: Optional[SnapshotSurface] = None,
    ) -> None:
        self.presence = presence
        self.stats = stats or StatsRevision()
        self.surface = surface

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "version": __version__}

    async def get_status(self) -> Dict[str, Any]:
        status = self.presence.snapshot().to_dict()
        status["stats_revision"] = self.stats.value
        return status

    async def toggle_timer(self) -> Dict[str, Any]:
        await self.presence.toggle()
        return await self._result()

    async def start_timer(self) -> Dict[str, Any]:
        await self.presence.start_timer()
        return await self._result()

    async def stop_timer(self) -> Dict[str, Any]:
        self.presence.stop_timer()
        return await self._result()

    async def reset_timer(self) -> Dict[str, Any]:
        self.presence.reset()
        return await self._result()

    async def enable_camera(self) -> Dict[str, Any]:
        enabled = await self.presence.enable_camera()
        result = await self._result(success=enabled)
        if not enabled:
            result["error"] = self.presence.camera_error or "Camera could not be enabled"
            result["error_code"] = "CAMERA_UNAVAILABLE"
        return result

    async def disable_camera(self) -> Dict[str, Any]:
        self.presence.disable_camera()
        return await self._result()

    def preview_jpeg(self) -> Optional[bytes]:
        if self.surface is None:
            return None
        return self.surface.snapshot_jpeg()

    async def _result(self, success: bool = True) -> Dict[str, Any]:
        return {"success": success, "status": await self.get_status()}


__all__ = ["PresenceAPIController", "StatsRevision"]

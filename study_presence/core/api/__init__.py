"""REST API for hosting UIs: status polling, timer and camera controls, preview."""

from .controller import PresenceAPIController, StatsRevision
from .server import APIServer, create_app

__all__ = ["APIServer", "PresenceAPIController", "StatsRevision", "create_app"]

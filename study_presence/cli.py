"""Command-line entry point: run the study timer headless behind its REST API."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from study_presence.core.api import APIServer, PresenceAPIController, StatsRevision
from study_presence.core.logging_config import configure_logging
from study_presence.core.logging_utils import get_module_logger
from study_presence.core.paths import DEFAULT_CONFIG_PATH
from study_presence.presence.component import StudyPresence
from study_presence.presence.config import PresenceConfig, load_config_file
from study_presence.presence.surface import SnapshotSurface


LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

logger = get_module_logger("StudyPresenceCLI")


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be an integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-presence",
        description="Presence-aware study timer with a local REST API",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"key = value configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=None,
        help="Logging verbosity (overrides logging.level)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional rotating log file (overrides logging.file)",
    )
    parser.add_argument("--host", type=str, default=None, help="API bind address")
    parser.add_argument("--port", type=_positive_int, default=None, help="API port")
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Camera index or device path (overrides capture.device)",
    )
    parser.add_argument(
        "--no-face-detection",
        dest="face_detection",
        action="store_false",
        default=None,
        help="Only detect a covered camera; any uncovered frame counts as present",
    )
    parser.add_argument(
        "--no-autostart",
        dest="autostart",
        action="store_false",
        default=None,
        help="Wait for a start command instead of running on launch",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed flags onto dotted config keys. Unset flags stay None."""
    return {
        "logging.level": args.log_level,
        "logging.file": str(args.log_file) if args.log_file else None,
        "api.host": args.host,
        "api.port": args.port,
        "capture.device": args.device,
        "sampler.face_detection": args.face_detection,
        "timer.autostart": args.autostart,
    }


def install_signal_handlers(stop_event: asyncio.Event, loop: asyncio.AbstractEventLoop) -> None:
    """Register SIGINT/SIGTERM handlers that set the stop event."""

    def signal_handler() -> None:
        if not stop_event.is_set():
            logger.info("Shutdown requested")
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, signal_handler)


async def run_service(config: PresenceConfig, stop_event: asyncio.Event) -> None:
    """Run the component and its API until ``stop_event`` is set."""
    surface = SnapshotSurface(jpeg_quality=config.api.preview_jpeg_quality)
    stats = StatsRevision()
    presence = StudyPresence.from_config(config, surface=surface, on_tick=stats.bump)
    controller = PresenceAPIController(presence, stats=stats, surface=surface)
    server: Optional[APIServer] = None
    if config.api.enabled:
        server = APIServer(
            controller,
            host=config.api.host,
            port=config.api.port,
            localhost_only=config.api.localhost_only,
        )

    async with presence:
        if server is not None:
            await server.start()
        try:
            await stop_event.wait()
        finally:
            if server is not None:
                await server.stop()


async def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = await load_config_file(args.config, overrides_from_args(args))

    try:
        configure_logging(config.logging)
    except ValueError as exc:
        parser.error(str(exc))
    logger.info("Starting study presence timer")
    logger.info("Config: %s", args.config or DEFAULT_CONFIG_PATH)

    stop_event = asyncio.Event()
    install_signal_handlers(stop_event, asyncio.get_running_loop())
    try:
        await run_service(config, stop_event)
    except OSError as exc:
        logger.error("Failed to start API server: %s", exc)
        sys.exit(1)
    logger.info("Study presence timer stopped")


__all__ = ["build_parser", "main", "overrides_from_args", "run_service"]

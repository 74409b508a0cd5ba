"""Typed configuration for the study presence component."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from study_presence.core.config_manager import ConfigManager
from study_presence.core.logging_utils import LoggerLike, ensure_structured_logger
from study_presence.core.paths import DEFAULT_CONFIG_PATH

Resolution = Tuple[int, int]

DEFAULT_CAPTURE_DEVICE = "0"
DEFAULT_CAPTURE_RESOLUTION: Resolution = (640, 480)
DEFAULT_CAPTURE_FPS = 15.0
DEFAULT_FACING_MODE = "user"
DEFAULT_SAMPLE_INTERVAL_S = 4.0
DEFAULT_ANALYSIS_SIZE: Resolution = (160, 90)
DEFAULT_DARK_THRESHOLD = 25.0
DEFAULT_FLATNESS_THRESHOLD = 50.0
DEFAULT_TICK_INTERVAL_S = 1.0
DEFAULT_PROBE_HOST = "1.1.1.1"
DEFAULT_PROBE_PORT = 53
DEFAULT_PROBE_INTERVAL_S = 10.0
DEFAULT_PROBE_TIMEOUT_S = 3.0
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8765
DEFAULT_PREVIEW_JPEG_QUALITY = 80
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_MAX_BYTES = 500 * 1024
DEFAULT_LOG_BACKUPS = 2


@dataclass(frozen=True, slots=True)
class CaptureSettings:
    device: str = DEFAULT_CAPTURE_DEVICE
    resolution: Resolution = DEFAULT_CAPTURE_RESOLUTION
    fps_hint: float = DEFAULT_CAPTURE_FPS
    facing_mode: str = DEFAULT_FACING_MODE


@dataclass(frozen=True, slots=True)
class SamplerSettings:
    interval_s: float = DEFAULT_SAMPLE_INTERVAL_S
    analysis_size: Resolution = DEFAULT_ANALYSIS_SIZE
    dark_threshold: float = DEFAULT_DARK_THRESHOLD
    flatness_threshold: float = DEFAULT_FLATNESS_THRESHOLD
    face_detection: bool = True


@dataclass(frozen=True, slots=True)
class TimerSettings:
    tick_interval_s: float = DEFAULT_TICK_INTERVAL_S
    autostart: bool = True


@dataclass(frozen=True, slots=True)
class ConnectivitySettings:
    enabled: bool = True
    probe_host: str = DEFAULT_PROBE_HOST
    probe_port: int = DEFAULT_PROBE_PORT
    interval_s: float = DEFAULT_PROBE_INTERVAL_S
    timeout_s: float = DEFAULT_PROBE_TIMEOUT_S


@dataclass(frozen=True, slots=True)
class APISettings:
    enabled: bool = True
    host: str = DEFAULT_API_HOST
    port: int = DEFAULT_API_PORT
    localhost_only: bool = True
    preview_jpeg_quality: int = DEFAULT_PREVIEW_JPEG_QUALITY


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    level: str = DEFAULT_LOG_LEVEL
    file: Optional[Path] = None
    console: bool = True
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backups: int = DEFAULT_LOG_BACKUPS


@dataclass(frozen=True, slots=True)
class PresenceConfig:
    capture: CaptureSettings = field(default_factory=CaptureSettings)
    sampler: SamplerSettings = field(default_factory=SamplerSettings)
    timer: TimerSettings = field(default_factory=TimerSettings)
    connectivity: ConnectivitySettings = field(default_factory=ConnectivitySettings)
    api: APISettings = field(default_factory=APISettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public API


def load_config(
    raw: Dict[str, str],
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> PresenceConfig:
    """Build a typed config from parsed ``key = value`` pairs plus optional overrides.

    Override values of None are ignored so argparse defaults can be passed
    straight through.
    """
    log = ensure_structured_logger(logger, fallback_name="Config")
    merged: Dict[str, Any] = dict(raw)
    if overrides:
        for key, value in overrides.items():
            if value is not None:
                merged[key] = value
    cm = ConfigManager()

    capture = CaptureSettings(
        device=cm.get_str(merged, "capture.device", DEFAULT_CAPTURE_DEVICE),
        resolution=_coerce_resolution(
            merged, "capture.resolution", DEFAULT_CAPTURE_RESOLUTION, log
        ),
        fps_hint=_positive(cm.get_float(merged, "capture.fps_hint", DEFAULT_CAPTURE_FPS), DEFAULT_CAPTURE_FPS),
        facing_mode=cm.get_str(merged, "capture.facing_mode", DEFAULT_FACING_MODE),
    )
    sampler = SamplerSettings(
        interval_s=_positive(
            cm.get_float(merged, "sampler.interval_s", DEFAULT_SAMPLE_INTERVAL_S),
            DEFAULT_SAMPLE_INTERVAL_S,
        ),
        analysis_size=_coerce_resolution(merged, "sampler.analysis_size", DEFAULT_ANALYSIS_SIZE, log),
        dark_threshold=cm.get_float(merged, "sampler.dark_threshold", DEFAULT_DARK_THRESHOLD),
        flatness_threshold=cm.get_float(merged, "sampler.flatness_threshold", DEFAULT_FLATNESS_THRESHOLD),
        face_detection=cm.get_bool(merged, "sampler.face_detection", True),
    )
    timer = TimerSettings(
        tick_interval_s=_positive(
            cm.get_float(merged, "timer.tick_interval_s", DEFAULT_TICK_INTERVAL_S),
            DEFAULT_TICK_INTERVAL_S,
        ),
        autostart=cm.get_bool(merged, "timer.autostart", True),
    )
    connectivity = ConnectivitySettings(
        enabled=cm.get_bool(merged, "connectivity.enabled", True),
        probe_host=cm.get_str(merged, "connectivity.probe_host", DEFAULT_PROBE_HOST),
        probe_port=cm.get_int(merged, "connectivity.probe_port", DEFAULT_PROBE_PORT),
        interval_s=_positive(
            cm.get_float(merged, "connectivity.interval_s", DEFAULT_PROBE_INTERVAL_S),
            DEFAULT_PROBE_INTERVAL_S,
        ),
        timeout_s=_positive(
            cm.get_float(merged, "connectivity.timeout_s", DEFAULT_PROBE_TIMEOUT_S),
            DEFAULT_PROBE_TIMEOUT_S,
        ),
    )
    api = APISettings(
        enabled=cm.get_bool(merged, "api.enabled", True),
        host=cm.get_str(merged, "api.host", DEFAULT_API_HOST),
        port=cm.get_int(merged, "api.port", DEFAULT_API_PORT),
        localhost_only=cm.get_bool(merged, "api.localhost_only", True),
        preview_jpeg_quality=cm.get_int(merged, "api.preview_jpeg_quality", DEFAULT_PREVIEW_JPEG_QUALITY),
    )
    log_file = cm.get_str(merged, "logging.file", "")
    logging_settings = LoggingSettings(
        level=cm.get_str(merged, "logging.level", DEFAULT_LOG_LEVEL).upper(),
        file=Path(log_file).expanduser() if log_file else None,
        console=cm.get_bool(merged, "logging.console", True),
        max_bytes=cm.get_int(merged, "logging.max_bytes", DEFAULT_LOG_MAX_BYTES),
        backups=cm.get_int(merged, "logging.backups", DEFAULT_LOG_BACKUPS),
    )

    return PresenceConfig(
        capture=capture,
        sampler=sampler,
        timer=timer,
        connectivity=connectivity,
        api=api,
        logging=logging_settings,
    )


async def load_config_file(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> PresenceConfig:
    raw = await ConfigManager().read_config_async(path or DEFAULT_CONFIG_PATH)
    return load_config(raw, overrides, logger=logger)


def with_sampler(config: PresenceConfig, **changes: Any) -> PresenceConfig:
    return replace(config, sampler=replace(config.sampler, **changes))


# ---------------------------------------------------------------------------
# Helpers


def _positive(value: float, default: float) -> float:
    return value if value > 0 else default


def _coerce_resolution(
    merged: Dict[str, Any],
    key: str,
    default: Resolution,
    log,
) -> Resolution:
    value = merged.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, (tuple, list)) and len(value) == 2:
        width, height = value
    else:
        text = str(value).lower().replace(" ", "")
        parts = text.split("x") if "x" in text else text.split(",")
        if len(parts) != 2:
            log.warning("Invalid resolution for %s: %s, using default %dx%d", key, value, *default)
            return default
        width, height = parts
    try:
        resolution = (int(width), int(height))
    except (TypeError, ValueError):
        log.warning("Invalid resolution for %s: %s, using default %dx%d", key, value, *default)
        return default
    if resolution[0] <= 0 or resolution[1] <= 0:
        log.warning("Non-positive resolution for %s: %s, using default %dx%d", key, value, *default)
        return default
    return resolution


__all__ = [
    "APISettings",
    "CaptureSettings",
    "ConnectivitySettings",
    "LoggingSettings",
    "PresenceConfig",
    "SamplerSettings",
    "TimerSettings",
    "load_config",
    "load_config_file",
    "with_sampler",
]

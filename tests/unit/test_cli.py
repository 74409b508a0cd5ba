"""Unit tests for the command-line entry point."""

import asyncio
from dataclasses import replace
from pathlib import Path

import pytest

from study_presence.cli import build_parser, main, overrides_from_args, run_service
from study_presence.presence.config import APISettings, ConnectivitySettings, PresenceConfig, load_config


class TestParser:

    def test_defaults_leave_config_untouched(self):
        args = build_parser().parse_args([])
        assert all(value is None for value in overrides_from_args(args).values())
        assert load_config({}, overrides_from_args(args)) == PresenceConfig()

    def test_flags_map_to_config_keys(self):
        args = build_parser().parse_args(
            [
                "--log-level", "debug",
                "--log-file", "/tmp/presence.log",
                "--port", "9100",
                "--device", "1",
                "--no-face-detection",
                "--no-autostart",
            ]
        )
        config = load_config({}, overrides_from_args(args))
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("/tmp/presence.log")
        assert config.api.port == 9100
        assert config.capture.device == "1"
        assert config.sampler.face_detection is False
        assert config.timer.autostart is False

    def test_rejects_non_positive_port(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--port", "0"])


class TestRunService:

    @pytest.mark.asyncio
    async def test_returns_when_stop_event_set(self):
        config = replace(
            PresenceConfig(),
            api=APISettings(enabled=False),
            connectivity=ConnectivitySettings(enabled=False),
        )
        config = replace(config, sampler=replace(config.sampler, face_detection=False))
        stop_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, stop_event.set)

        await asyncio.wait_for(run_service(config, stop_event), timeout=5)


class TestMain:

    @pytest.mark.asyncio
    async def test_unknown_log_level_exits_with_usage_error(self, tmp_path):
        config_file = tmp_path / "config.txt"
        config_file.write_text("logging.level = loud\napi.enabled = false\n", encoding="utf-8")

        with pytest.raises(SystemExit) as excinfo:
            await main(["--config", str(config_file)])
        assert excinfo.value.code == 2

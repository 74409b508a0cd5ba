"""Unit tests for typed configuration loading."""

from pathlib import Path

import pytest

from study_presence.core.paths import DEFAULT_CONFIG_PATH
from study_presence.presence.config import (
    PresenceConfig,
    load_config,
    load_config_file,
    with_sampler,
)


class TestLoadConfig:

    def test_empty_mapping_gives_defaults(self):
        assert load_config({}) == PresenceConfig()

    def test_defaults(self):
        config = PresenceConfig()
        assert config.sampler.interval_s == 4.0
        assert config.sampler.analysis_size == (160, 90)
        assert config.sampler.dark_threshold == 25.0
        assert config.sampler.flatness_threshold == 50.0
        assert config.timer.tick_interval_s == 1.0
        assert config.timer.autostart is True
        assert config.api.host == "127.0.0.1"

    def test_values_parsed(self):
        config = load_config(
            {
                "capture.device": "/dev/video2",
                "capture.resolution": "1280x720",
                "sampler.interval_s": "2.5",
                "sampler.analysis_size": "320, 180",
                "sampler.face_detection": "no",
                "timer.autostart": "false",
                "api.port": "9001",
                "logging.level": "debug",
                "logging.file": "~/presence.log",
                "logging.console": "false",
                "logging.backups": "5",
            }
        )
        assert config.capture.device == "/dev/video2"
        assert config.capture.resolution == (1280, 720)
        assert config.sampler.interval_s == 2.5
        assert config.sampler.analysis_size == (320, 180)
        assert config.sampler.face_detection is False
        assert config.timer.autostart is False
        assert config.api.port == 9001
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("~/presence.log").expanduser()
        assert config.logging.console is False
        assert config.logging.backups == 5

    def test_invalid_values_fall_back(self):
        config = load_config(
            {
                "capture.resolution": "wide",
                "sampler.interval_s": "-1",
                "sampler.dark_threshold": "dark",
                "timer.tick_interval_s": "0",
                "api.port": "http",
            }
        )
        assert config.capture.resolution == (640, 480)
        assert config.sampler.interval_s == 4.0
        assert config.sampler.dark_threshold == 25.0
        assert config.timer.tick_interval_s == 1.0
        assert config.api.port == 8765

    def test_overrides_win_and_none_is_ignored(self):
        config = load_config(
            {"api.port": "9001", "timer.autostart": "false"},
            {"api.port": 9100, "timer.autostart": None, "sampler.face_detection": False},
        )
        assert config.api.port == 9100
        assert config.timer.autostart is False
        assert config.sampler.face_detection is False

    def test_empty_log_file_means_console_only(self):
        assert load_config({"logging.file": ""}).logging.file is None

    def test_with_sampler(self):
        config = with_sampler(PresenceConfig(), interval_s=1.0)
        assert config.sampler.interval_s == 1.0
        assert config.sampler.dark_threshold == 25.0


class TestLoadConfigFile:

    @pytest.mark.asyncio
    async def test_bundled_defaults_match_builtin(self):
        assert DEFAULT_CONFIG_PATH.exists()
        assert await load_config_file(DEFAULT_CONFIG_PATH) == PresenceConfig()

    @pytest.mark.asyncio
    async def test_missing_file_gives_defaults(self, tmp_path):
        assert await load_config_file(tmp_path / "missing.txt") == PresenceConfig()

    @pytest.mark.asyncio
    async def test_file_with_overrides(self, tmp_path):
        path = tmp_path / "config.txt"
        path.write_text("sampler.interval_s = 8  # slower\napi.port = 9002\n", encoding="utf-8")
        config = await load_config_file(path, {"api.port": 9003})
        assert config.sampler.interval_s == 8.0
        assert config.api.port == 9003

"""Unit tests for structured logging helpers and logging configuration."""

import logging

import pytest

from study_presence.core.logging_config import configure_logging, remove_installed_handlers, resolve_level
from study_presence.core.logging_utils import (
    StructuredLogger,
    component_of,
    ensure_structured_logger,
    get_module_logger,
    qualified_name,
)
from study_presence.presence.config import LoggingSettings


class TestStructuredLogger:

    def test_module_logger_namespace_and_prefix(self, caplog):
        log = get_module_logger("Capture")
        assert log.name == "study_presence.Capture"
        assert log.component == "Capture"

        with caplog.at_level(logging.INFO):
            log.info("Camera %s", "enabled")
        assert caplog.records[-1].getMessage() == "[Capture] Camera enabled"

    def test_names(self):
        assert qualified_name(None) == "study_presence"
        assert qualified_name("study_presence.Timer") == "study_presence.Timer"
        assert component_of("study_presence") == "Core"
        assert component_of("aiohttp.server") == "aiohttp.server"

    def test_child_component(self):
        child = get_module_logger("StudyPresence").getChild("Timer")
        assert child.component == "StudyPresence.Timer"
        assert child.name == "study_presence.StudyPresence.Timer"

    def test_bad_format_args_are_kept(self, caplog):
        with caplog.at_level(logging.INFO):
            get_module_logger("X").info("value %d", "not-a-number")
        assert "args=not-a-number" in caplog.records[-1].getMessage()

    def test_exception_attaches_traceback(self, caplog):
        with caplog.at_level(logging.ERROR):
            try:
                raise RuntimeError("driver gone")
            except RuntimeError:
                get_module_logger("Capture").exception("Read failed")
        record = caplog.records[-1]
        assert record.getMessage() == "[Capture] Read failed"
        assert record.exc_info is not None

    def test_disabled_level_is_dropped(self, caplog):
        with caplog.at_level(logging.WARNING):
            get_module_logger("Quiet").debug("invisible")
        assert not caplog.records

    def test_ensure_structured_logger(self):
        plain = logging.getLogger("plain")
        wrapped = ensure_structured_logger(plain)
        assert isinstance(wrapped, StructuredLogger)
        assert wrapped.component == "plain"
        assert ensure_structured_logger(wrapped) is wrapped
        adapted = ensure_structured_logger(logging.LoggerAdapter(plain, {}), component="Plain")
        assert adapted.component == "Plain"
        assert ensure_structured_logger(None, fallback_name="Sampler").name == "study_presence.Sampler"


class TestLoggingConfig:

    @pytest.fixture(autouse=True)
    def restore_root_level(self):
        root = logging.getLogger()
        saved = root.level
        yield
        remove_installed_handlers()
        root.setLevel(saved)

    def test_resolve_level(self):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(" Warning ") == logging.WARNING
        assert resolve_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError):
            resolve_level("chatty")

    def test_file_handler_from_settings(self, tmp_path):
        log_file = tmp_path / "logs" / "presence.log"
        handlers = configure_logging(LoggingSettings(level="DEBUG", file=log_file, console=False, backups=3))

        assert len(handlers) == 1
        assert handlers[0].backupCount == 3
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("aiohttp.access").level == logging.WARNING

        get_module_logger("Test").info("hello file")
        handlers[0].flush()
        assert "[Test] hello file" in log_file.read_text(encoding="utf-8")

    def test_reconfigure_replaces_only_own_handlers(self):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            first = configure_logging(LoggingSettings())
            second = configure_logging(LoggingSettings(level="WARNING"))

            assert foreign in root.handlers
            assert all(handler not in root.handlers for handler in first)
            assert all(handler in root.handlers for handler in second)
            assert root.level == logging.WARNING
        finally:
            root.removeHandler(foreign)

    def test_unknown_level_leaves_handlers_alone(self):
        installed = configure_logging(LoggingSettings())
        with pytest.raises(ValueError):
            configure_logging(LoggingSettings(level="LOUD"))
        assert all(handler in logging.getLogger().handlers for handler in installed)

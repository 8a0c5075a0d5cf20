"""
Tests for logging configuration.
"""

import logging

import pytest

from picobuild.core.observability.logging_config import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_switches_win(self):
        env = {"PICOBUILD_LOG_LEVEL": "ERROR"}
        assert resolve_level(debug=True, environ=env) == "DEBUG"
        assert resolve_level(verbose=True, environ=env) == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_env_then_default(self):
        assert resolve_level(environ={"PICOBUILD_LOG_LEVEL": "info"}) == "info"
        assert resolve_level(environ={}) == "WARNING"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_unknown_level_is_warning(self):
        setup_logging("chatty")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "picobuild.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("picobuild.test").debug("probe detail")
        for h in root.handlers:
            h.flush()
        assert "probe detail" in log_file.read_text()

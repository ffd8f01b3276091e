"""
Tests for logging configuration helpers.
"""

import json
import logging
import sys
import pytest

from storage_core.config import StorageSettings
from storage_core.errors import ConfigurationError
from storage_core.logging import (
    LOGGER_NAME,
    JsonFormatter,
    build_logging_config,
    configure_logging,
    configure_logging_from_env,
    get_logger,
)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handler and level changes made by dictConfig."""
    package_logger = logging.getLogger(LOGGER_NAME)
    handlers = package_logger.handlers[:]
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    for handler in package_logger.handlers:
        if handler not in handlers:
            handler.close()
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


class TestConfigureLogging:

    def test_console_logging(self):
        logger = configure_logging(StorageSettings(log_level="DEBUG"))

        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1

    def test_file_logging(self, temp_dir):
        log_file = temp_dir / "logs" / "storage.log"

        logger = configure_logging(StorageSettings(log_file=log_file))
        logger.info("written to file")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "written to file" in log_file.read_text(encoding="utf-8")

    def test_json_logging(self, temp_dir):
        log_file = temp_dir / "storage.jsonl"

        logger = configure_logging(StorageSettings(log_file=log_file, log_json=True))
        logger.info("structured", extra={"path": "/data/a.txt"})
        for handler in logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert entry["message"] == "structured"
        assert entry["level"] == "INFO"
        assert entry["path"] == "/data/a.txt"

    def test_defaults(self):
        logger = configure_logging()

        assert logger.level == logging.INFO

    def test_invalid_settings_rejected(self):
        with pytest.raises(ConfigurationError, match="log_level"):
            configure_logging(StorageSettings(log_level="LOUD"))

    def test_configure_logging_from_env(self, monkeypatch):
        monkeypatch.setenv("STORAGE_CORE_LOG_LEVEL", "error")

        logger = configure_logging_from_env()

        assert logger.level == logging.ERROR

    def test_configure_logging_from_explicit_environ(self):
        logger = configure_logging_from_env({"STORAGE_CORE_LOG_LEVEL": "warning"})

        assert logger.level == logging.WARNING

    def test_build_logging_config(self, temp_dir):
        config = build_logging_config(StorageSettings(log_file=temp_dir / "a.log", log_json=True))

        assert config["formatters"]["storage"] == {"()": JsonFormatter}
        assert config["loggers"][LOGGER_NAME]["handlers"] == ["stderr", "file"]
        assert config["handlers"]["file"]["filename"] == str(temp_dir / "a.log")
        assert "root" not in config

    def test_get_logger(self):
        assert get_logger() is logging.getLogger(LOGGER_NAME)
        assert get_logger("storage_core.services").name == "storage_core.services"


class TestJsonFormatter:

    def test_exception_info(self):
        formatter = JsonFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed %s", ("op",), sys.exc_info())

        entry = json.loads(formatter.format(record))

        assert entry["message"] == "failed op"
        assert "RuntimeError: boom" in entry["exception"]
        assert "msg" not in entry
        assert "args" not in entry

"""
Tests for the logging configuration module.
"""

import logging

import pytest

from cafe_directory.logging_config import setup_logging, get_logger


@pytest.fixture(autouse=True)
def cleanup_logger():
    """Remove all handlers from the cafe_directory logger after each test."""
    yield
    logger = logging.getLogger("cafe_directory")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


class TestSetupLogging:
    """Tests for logging setup."""

    def test_setup_creates_logger(self, tmp_path):
        """setup_logging should create a configured logger."""
        log_file = str(tmp_path / "test.log")
        setup_logging(level="DEBUG", log_file=log_file)

        logger = logging.getLogger("cafe_directory")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) >= 2  # file + console

    def test_setup_creates_log_file_directory(self, tmp_path):
        """setup_logging should create the log file directory if missing."""
        log_file = str(tmp_path / "subdir" / "test.log")
        setup_logging(level="INFO", log_file=log_file)

        assert (tmp_path / "subdir").exists()

    def test_module_message_written_to_file(self, tmp_path):
        """Messages from package modules should reach the log file."""
        log_file = str(tmp_path / "test.log")
        setup_logging(level="DEBUG", log_file=log_file)

        get_logger("cafe_directory.importer.pipeline").info("Imported cafes.csv")

        for handler in logging.getLogger("cafe_directory").handlers:
            handler.flush()

        with open(log_file) as f:
            content = f.read()
        assert "Imported cafes.csv" in content


class TestGetLogger:
    """Tests for the get_logger helper."""

    def test_returns_namespaced_logger(self):
        """get_logger should return a logger under the cafe_directory namespace."""
        logger = get_logger("test_module")
        assert logger.name == "cafe_directory.test_module"

    def test_module_name_not_prefixed_twice(self):
        """Passing __name__ of a package module keeps it as is."""
        logger = get_logger("cafe_directory.search")
        assert logger.name == "cafe_directory.search"

    def test_different_modules_get_different_loggers(self):
        """Each module should get its own logger instance."""
        assert get_logger("module_a").name != get_logger("module_b").name

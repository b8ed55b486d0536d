"""Unit tests for logging infrastructure."""

import pytest
import logging
import threading

from ghspace.utils.logging import (
    setup_logger,
    get_logger,
    shutdown_logging,
)


class TestSetupLogger:
    """Test setup_logger function."""

    def test_basic_logger_creation(self):
        """Test basic logger creation with default settings."""
        logger = setup_logger("test_logger")

        assert logger.name == "test_logger"
        assert logger.level == logging.INFO
        assert len(logger.handlers) >= 1
        assert not logger.propagate

    def test_logger_level_configuration(self):
        levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        for level in levels:
            logger = setup_logger(f"test_{level}", level=level)
            assert logger.level == getattr(logging, level)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logger("test", level="INVALID")

    def test_file_logging(self, temp_dir):
        log_file = temp_dir / "test.log"
        logger = setup_logger("test_file", log_file=log_file)

        logger.info("Test file logging message")

        assert log_file.exists()
        assert "Test file logging message" in log_file.read_text()

    def test_file_logging_directory_creation(self, temp_dir):
        log_file = temp_dir / "subdir" / "test.log"
        logger = setup_logger("test_subdir", log_file=log_file)

        logger.info("Test message")

        assert log_file.exists()
        assert log_file.parent.is_dir()

    def test_file_records_the_calling_function(self, temp_dir):
        log_file = temp_dir / "calls.log"
        logger = setup_logger("test_calls", log_file=log_file)

        def compute_distance():
            logger.info("searching")

        compute_distance()

        assert "compute_distance:" in log_file.read_text()

    def test_logger_registry(self):
        """Test that loggers are registered and reused."""
        logger1 = setup_logger("registry_test")
        logger2 = setup_logger("registry_test", level="DEBUG")

        assert logger1 is logger2
        assert logger2.level == logging.INFO

    def test_thread_safety(self):
        results = []

        def create_logger(name):
            results.append(setup_logger(name))

        threads = [threading.Thread(target=create_logger, args=(f"thread_{i}",)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 10
        assert all(isinstance(r, logging.Logger) for r in results)


class TestGetLogger:
    """Test get_logger function."""

    def test_get_existing_logger(self):
        original = setup_logger("existing")
        assert get_logger("existing") is original

    def test_get_nonexistent_logger(self):
        logger = get_logger("nonexistent")

        assert logger.name == "nonexistent"
        assert logger.level == logging.INFO


class TestShutdownLogging:
    """Test logging shutdown functionality."""

    def test_shutdown_clears_handlers(self):
        logger = setup_logger("shutdown_test")
        assert logger.handlers

        shutdown_logging()

        assert logger.handlers == []

    def test_shutdown_with_file_handlers(self, temp_dir):
        log_file = temp_dir / "shutdown.log"
        logger = setup_logger("shutdown_file", log_file=log_file)

        logger.info("Before shutdown")
        shutdown_logging()

        assert log_file.exists()
        assert "Before shutdown" in log_file.read_text()

    def test_registry_rebuilt_after_shutdown(self):
        first = setup_logger("rebuilt")
        shutdown_logging()
        second = setup_logger("rebuilt")

        assert second.handlers
        assert first is second

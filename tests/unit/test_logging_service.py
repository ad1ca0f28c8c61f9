"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path

from treasury.services.logging import get_log_level, setup_server_logging


class TestServerLogging:
    """Test server logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)

    def test_creates_log_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "nested" / "server.log"

            setup_server_logging(str(log_file))

            assert log_file.parent.exists()

    def test_creates_stdout_and_file_handlers(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"))

            handler_types = {type(h) for h in logging.getLogger().handlers}
            assert logging.FileHandler in handler_types
            assert logging.StreamHandler in handler_types

    def test_messages_reach_the_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"
            setup_server_logging(str(log_file), level_name="DEBUG")

            logging.getLogger("treasury.test").info("refresh finished")
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert "treasury.test - INFO - refresh finished" in log_file.read_text()

    def test_level_names(self) -> None:
        assert get_log_level("debug") == logging.DEBUG
        assert get_log_level("WARNING") == logging.WARNING
        assert get_log_level("verbose") == logging.INFO

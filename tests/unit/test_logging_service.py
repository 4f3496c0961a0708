"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

from hoa_ledger.services.logging import get_log_level, setup_logging


class TestSetupLogging:
    """Test ledger logging configuration."""

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
        """Verify setup_logging creates the log directory if missing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "nested" / "ledger.log"
            assert not log_file.parent.exists()

            setup_logging(str(log_file))

            assert log_file.parent.exists()

    def test_creates_stdout_and_file_handlers(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(str(Path(temp_dir) / "ledger.log"))

            assert len(self.root_logger.handlers) == 2

    def test_returns_package_logger(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            logger = setup_logging(str(Path(temp_dir) / "ledger.log"))

            assert logger.name == "hoa_ledger"

    def test_level_from_environment(self) -> None:
        """Verify LOG_LEVEL controls the root logger and both handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict("os.environ", {"LOG_LEVEL": "debug"}, clear=False):
                setup_logging(str(Path(temp_dir) / "ledger.log"))

                assert self.root_logger.level == logging.DEBUG
                for handler in self.root_logger.handlers:
                    assert handler.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "CHATTY"}, clear=False):
            assert get_log_level() == logging.INFO

    def test_writes_formatted_messages_to_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "ledger.log"
            with patch.dict("os.environ", {"LOG_LEVEL": "INFO"}, clear=False):
                setup_logging(str(log_file))

            logging.getLogger("hoa_ledger.services.test").warning("Drift detected")

            log_contents = log_file.read_text()
            assert "[20" in log_contents
            assert "hoa_ledger.services.test - WARNING - Drift detected" in log_contents

    def test_removes_existing_handlers(self) -> None:
        """Verify repeated setup does not stack handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "ledger.log"
            dummy_handler = logging.StreamHandler()
            self.root_logger.addHandler(dummy_handler)

            setup_logging(str(log_file))
            setup_logging(str(log_file))

            assert len(self.root_logger.handlers) == 2
            assert dummy_handler not in self.root_logger.handlers

    def test_quiets_sqlalchemy_engine(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(str(Path(temp_dir) / "ledger.log"))

            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

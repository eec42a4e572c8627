"""
Tests for the shared logging setup.
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from api.common.config import Settings
from api.common.logging_config import get_logger, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    """Tests for ``setup_logging``."""

    def test_console_only_without_log_file(self, root_logger):
        setup_logging("DEBUG")

        assert root_logger.level == logging.DEBUG
        assert not any(isinstance(handler, RotatingFileHandler) for handler in root_logger.handlers)

    def test_log_file_setting_adds_rotating_file(self, root_logger, tmp_path):
        settings = Settings.from_env(
            {"MONGO_URI": "mongodb://db:27017", "LOG_FILE": "movies.log", "LOG_DIR": str(tmp_path / "logs")}
        )
        setup_logging(settings.log_level, settings.log_file, settings.log_dir)

        file_handlers = [handler for handler in root_logger.handlers if isinstance(handler, RotatingFileHandler)]
        assert len(file_handlers) == 1

        get_logger("api.api_movies").info("Movie published")
        file_handlers[0].flush()
        assert "Movie published" in (tmp_path / "logs" / "movies.log").read_text()

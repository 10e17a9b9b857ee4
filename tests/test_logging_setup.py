"""Tests for logging configuration."""

import logging

from rich.logging import RichHandler

from depocleaner.logging_setup import configure_logging


class TestConfigureLogging:
    def test_console_handler_level(self):
        logger = configure_logging(verbose=False)
        rich_handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert rich_handlers[0].level == logging.WARNING

    def test_verbose(self):
        logger = configure_logging(verbose=True)
        assert logger.level == logging.DEBUG

    def test_file_handler_writes(self, tmp_path):
        log_path = tmp_path / "logs" / "depocleaner.log"
        logger = configure_logging(log_path=log_path)

        logging.getLogger("depocleaner.scanner").info("hello from the scanner")
        for handler in logger.handlers:
            handler.flush()

        assert "hello from the scanner" in log_path.read_text()

    def test_reconfigure_replaces_handlers(self, tmp_path):
        configure_logging(log_path=tmp_path / "a.log")
        logger = configure_logging(log_path=tmp_path / "b.log")

        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename.endswith("b.log")

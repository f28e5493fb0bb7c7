"""Unit tests for apidex.logging_setup."""

from __future__ import annotations

import logging
from io import StringIO
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from apidex.logging_setup import setup_logging


class TestSetupLogging:
    def teardown_method(self) -> None:
        logger = logging.getLogger("apidex")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)

    def test_returns_package_logger(self) -> None:
        logger = setup_logging()
        assert logger.name == "apidex"
        assert logger.level == logging.WARNING

    def test_case_insensitive_level(self) -> None:
        assert setup_logging(level="debug").level == logging.DEBUG

    def test_unknown_level_falls_back_to_warning(self) -> None:
        assert setup_logging(level="chatty").level == logging.WARNING

    def test_single_rich_handler(self) -> None:
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "apidex.log"
        logger = setup_logging(level="INFO", log_file=log_file)
        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1

        logging.getLogger("apidex.index.indexer").info("Reindexed document %s", 3)
        file_handlers[0].flush()
        line = log_file.read_text(encoding="utf-8").strip()
        assert line.endswith("apidex.index.indexer | INFO | Reindexed document 3")

    def test_custom_console_receives_records(self) -> None:
        buffer = StringIO()
        setup_logging(level="INFO", console=Console(file=buffer, width=200))
        logging.getLogger("apidex.service").info("Created document 'petstore'")
        assert "Created document 'petstore'" in buffer.getvalue()

    def test_records_below_level_dropped(self) -> None:
        buffer = StringIO()
        setup_logging(level="WARNING", console=Console(file=buffer, width=200))
        logging.getLogger("apidex.service").info("hidden")
        assert "hidden" not in buffer.getvalue()

    def test_reconfiguring_closes_previous_file_handler(self, tmp_path: Path) -> None:
        first = setup_logging(log_file=tmp_path / "first.log")
        (old_handler,) = [h for h in first.handlers if isinstance(h, logging.FileHandler)]
        assert old_handler.stream is not None

        logger = setup_logging(log_file=tmp_path / "second.log")
        assert old_handler.stream is None
        assert old_handler not in logger.handlers

"""Logging infrastructure for the apidex command line.

Library modules only call ``logging.getLogger(__name__)``; this module wires
the ``apidex`` logger to a Rich console handler on *stderr* and, when asked,
to a timestamped log file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    *,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``apidex`` logger.

    Args:
        level: Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).
        log_file: Optional path to a log file. A :class:`~logging.FileHandler`
            with timestamps is added when provided.
        console: Optional Rich console for the console handler.

    Returns:
        The configured ``apidex`` logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger("apidex")
    logger.setLevel(numeric_level)

    # Repeated calls (tests, CliRunner) must not stack or leak handlers
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
    )
    rich_handler.setLevel(numeric_level)
    logger.addHandler(rich_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file))
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger

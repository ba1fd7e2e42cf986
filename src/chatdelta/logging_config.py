"""Logging setup for the chatdelta CLI and TUI."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "chatdelta"
DEFAULT_LOG_FILE = Path.home() / ".chatdelta" / "chatdelta.log"


def setup_logging(
    level: int = logging.WARNING,
    log_file: Path | None = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Console level (WARNING by default, DEBUG for --verbose).
        log_file: Rotating file that receives everything at DEBUG.
        console: Log to stderr. The TUI turns this off so the screen stays clean.

    Returns:
        The configured "chatdelta" logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger.addHandler(console_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"[Logging] Cannot write {log_file}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger

"""
Logging

Colored console output and optional rotating log file for kmsynth.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = 'kmsynth'


class ColorFormatter(logging.Formatter):
    """Colored log formatter"""
    COLORS = {
        'DEBUG': '\033[38;5;244m',
        'INFO': '\033[38;5;44m',
        'WARNING': '\033[38;5;214m',
        'ERROR': '\033[38;5;196m',
        'CRITICAL': '\033[38;5;196;1m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record):
        if not self.use_colors:
            return super().format(record)
        # Work on a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None,
                  max_file_size: int = 10 * 1024 * 1024,
                  backup_count: int = 5) -> logging.Logger:
    """
    Configure the kmsynth logger

    Args:
        verbose: Enable debug output
        log_file: Optional log file path (rotated at max_file_size)
        max_file_size: Rotation threshold in bytes
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColorFormatter('%(levelname)s %(message)s',
                                        use_colors=sys.stdout.isatty()))
    logger.addHandler(console)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(log_file, maxBytes=max_file_size,
                                     backupCount=backup_count, encoding='utf-8')
            fh.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s'))
            logger.addHandler(fh)
        except OSError as e:
            logger.warning(f"Failed to setup file logging: {e}")

    return logger

# logger.py
"""
Logging for Miller Mitra.

One application logger writes everything to ``LOG_DIR/miller_mitra.log``,
rolled over at midnight with ``LOG_RETENTION_DAYS`` old files kept, and
echoes ``LOG_LEVEL`` and above to the console.
"""

import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

LOGS_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE = "miller_mitra.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _console_level() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str = "MillerMitra") -> logging.Logger:
    logger = logging.getLogger(name)
    # Streamlit re-executes the app on every rerun
    if logger.handlers:
        return logger
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        LOGS_DIR / LOG_FILE,
        when="midnight",
        backupCount=int(os.getenv("LOG_RETENTION_DAYS", "30")),
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_console_level())
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger


logger = setup_logger()


def log_info(message: str):
    logger.info(message)


def log_warning(message: str):
    logger.warning(message)


def log_error(message: str, exc_info=False):
    """Log an error; pass ``exc_info=True`` inside an except block to keep the traceback."""
    logger.error(message, exc_info=exc_info)


def log_debug(message: str):
    logger.debug(message)

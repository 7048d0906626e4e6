import logging
import sys

from file_extraction.config import get_log_level

_LOGGER_NAME = "file_extraction"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger once per process."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel((level or get_log_level()).upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)
    return logger

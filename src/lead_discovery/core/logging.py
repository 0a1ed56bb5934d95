"""Logging configuration."""
import logging
import sys
from pathlib import Path
from .config import settings

LOGGER_NAME = "lead_discovery"


def setup_logging() -> logging.Logger:
    """Configure application logging."""

    logger = logging.getLogger(LOGGER_NAME)

    # Importing twice (reloads, test collection) must not stack handlers
    if logger.handlers:
        return logger

    # Configure formatters
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "lead_discovery.log")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger for a module or component."""
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logger.getChild(name)


logger = setup_logging()

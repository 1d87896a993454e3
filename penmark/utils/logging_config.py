"""
Logging setup for the application.
"""
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the `penmark` logger with a console and optional file handler.

    Calling it again only updates the level; handlers are added once.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    app_logger = logging.getLogger("penmark")
    app_logger.setLevel(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Console handler
    if not any(type(h) is logging.StreamHandler for h in app_logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        app_logger.addHandler(console)

    # File handler
    if log_file and not any(
        isinstance(h, logging.FileHandler) for h in app_logger.handlers
    ):
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)

    for handler in app_logger.handlers:
        handler.setLevel(log_level)

    return app_logger

"""
Pennsylvania Beneficiary Atlas - Logging Configuration
Structured JSON logging for production runs, plain text for development
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional

from pythonjsonlogger import jsonlogger

from config.settings import get_settings

settings = get_settings()

JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _build_formatter() -> logging.Formatter:
    if settings.ENVIRONMENT == "production":
        return jsonlogger.JsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(name: str = "pa_atlas", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure logging for a pipeline run.

    The named logger gets a stdout handler and, when a log directory is
    configured, a dated file handler. The same handlers are attached to the
    root logger so module loggers from get_logger() share the output.

    Args:
        name: Logger name, also used as the log file prefix
        log_dir: Directory for the log file (default: settings.LOG_DIR)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers = []
    logger.propagate = False

    formatter = _build_formatter()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    log_dir = settings.LOG_DIR if log_dir is None else log_dir
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{name}_{datetime.now().strftime('%Y%m%d')}.log")
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(logger.level)
    root_logger.handlers = list(logger.handlers)

    return logger


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger for a specific module (typically __name__)."""
    return logging.getLogger(module_name)

"""Centralized logging configuration driven by LOG_LEVEL / LOG_FORMAT."""

import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from config import settings

NOISY_LOGGERS = ("pymongo", "urllib3", "httpx", "httpcore")


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure the root logger with a single stdout handler."""
    level_name = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if log_format == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
            static_fields={"service": settings.service_name, "env": settings.env},
        )
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

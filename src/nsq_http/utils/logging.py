"""Logging utilities for the NSQ HTTP client."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from ..core.config import LoggingSettings, LogFormat


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record):
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    """Setup client logging.

    Safe to call more than once; the handler installed by a previous call
    is replaced rather than duplicated.
    """
    settings = settings or LoggingSettings()
    level = getattr(logging, settings.log_level.upper())

    # Configure formatting
    if settings.log_format == LogFormat.JSON:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Setup handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.set_name("nsq_http")

    # Configure logger
    logger = logging.getLogger("nsq_http")
    for existing in list(logger.handlers):
        if existing.get_name() == "nsq_http":
            logger.removeHandler(existing)
    logger.setLevel(level)
    logger.addHandler(handler)

    return logger

"""Root logger configuration: readable lines in development, JSON in production."""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger.jsonlogger import JsonFormatter

from scriptforge.config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure the root logger once; later calls are no-ops."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    formatter: logging.Formatter
    if settings.is_production:
        formatter = JsonFormatter(fmt="%(asctime)s %(levelname)s %(name)s %(message)s")
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    if settings.is_production:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)

"""
Structured (JSON) logging configuration for the Planico planner.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
import sys
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from ..config import get_settings


class CustomJsonFormatter(JsonFormatter):
    """
    Custom JSON formatter for structured logging.

    Enriches log records with standardized fields for consistent
    log aggregation and analysis.
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        if "message" not in log_record:
            log_record["message"] = record.getMessage()


def configure_logging() -> None:
    """
    Configure structured JSON logging for the application.

    Call once during startup. The level comes from ``LOG_LEVEL``; when unset
    it is DEBUG in development and INFO elsewhere.
    """
    settings = get_settings()
    environment = settings.ENVIRONMENT.lower()
    log_level_str = settings.LOG_LEVEL.upper()

    if not log_level_str:
        log_level_str = "DEBUG" if environment == "development" else "INFO"

    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            static_fields={
                "environment": environment,
                "application": "planico-planner",
            },
        )
    )
    root_logger.addHandler(console_handler)

    root_logger.info(
        "Structured logging configured",
        extra={"log_level": log_level_str, "environment": environment},
    )

    # Adjust third-party library log levels to reduce noise
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

"""
vestvault - Structured Logging Configuration

Configures JSON logging so withdrawal, revocation and delegation records can be
shipped to a log aggregator and queried by their ``event`` field.

Usage:
    from vestvault.core.logging_config import setup_logging

    logger = setup_logging(name="vestvault", level="INFO")
    logger.info("Schedule created", extra={"event": "vesting.created"})
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from vestvault.core import config


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps every record with timestamp, level, environment
    and service name.
    """

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        environment: Optional[str] = None,
        service_name: str = "vestvault",
    ):
        super().__init__(fmt=fmt)
        self.environment = environment or config.LOG_ENVIRONMENT
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if "timestamp" not in log_record or not log_record["timestamp"]:
            log_record["timestamp"] = (
                datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"
            )
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name
        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def setup_logging(
    name: str = "vestvault",
    log_file: Optional[str] = None,
    level: Optional[str] = None,
    environment: Optional[str] = None,
    enable_console: bool = True,
    max_bytes: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup structured JSON logging.

    Args:
        name: Logger name; child loggers (``vestvault.core...``) inherit it
        log_file: Path to a JSON log file; defaults to VESTVAULT_LOG_FILE
        level: Logging level; defaults to VESTVAULT_LOG_LEVEL
        environment: Environment label added to each record
        enable_console: Whether to log to stdout
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    level_name = (level or config.LOG_LEVEL).upper()
    log_file = log_file or config.LOG_FILE

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level_name))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    formatter = CustomJsonFormatter(
        environment=environment,
        service_name=name.split(".")[0],
    )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level_name))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(getattr(logging, level_name))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("Could not create file handler for %s: %s", log_file, e)

    return logger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Return ``name``'s logger, configuring it only if it has no handlers yet."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logging(name=name, level=level)
    return logger

"""
Structured JSON logging for the rule content storage

All storage loggers are children of a single service logger, which owns the
only handler. Records are emitted as JSON (python-json-logger) or, for local
development, as plain text.
"""
import logging
import os
import sys
import time
from datetime import datetime, timezone

from pythonjsonlogger.json import JsonFormatter

from src.storage.errors import classify_error

SERVICE_LOGGER_NAME = "insights-rules-storage"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StorageJsonFormatter(JsonFormatter):
    """
    JSON formatter stamping every record with service, component and UTC time
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_LOGGER_NAME
        log_record["component"] = record.name.removeprefix(f"{SERVICE_LOGGER_NAME}.")


def setup_logger(level: str | None = None, format_type: str | None = None) -> logging.Logger:
    """
    Configure the service logger

    Calling it again replaces the handler, so tests and the CLI can switch
    level or format at runtime.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: $LOG_LEVEL or INFO)
        format_type: "json" or "text" (default: $LOG_FORMAT or json)

    Returns:
        The service logger
    """
    log_level = LOG_LEVELS.get((level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    format_type = format_type or os.getenv("LOG_FORMAT", "json")

    handler = logging.StreamHandler(sys.stdout)
    if format_type == "json":
        handler.setFormatter(StorageJsonFormatter("%(level)s %(component)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger = logging.getLogger(SERVICE_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.addHandler(handler)
    # Propagate so host applications and pytest's caplog receive records
    logger.propagate = True

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a component logger below the service logger

    Args:
        name: Module name, e.g. __name__ ("src." is dropped)

    Returns:
        Logger named "insights-rules-storage.<component>"
    """
    service = logging.getLogger(SERVICE_LOGGER_NAME)
    if not service.handlers:
        setup_logger()

    if not name:
        return service
    return service.getChild(name.removeprefix("src."))


class log_operation:
    """
    Log start, completion and failure of a storage operation

    Usage:
        with log_operation("Loading rule content", logger=logger, rules=12):
            # do work
            pass
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.started = None

    def __enter__(self):
        self.started = time.perf_counter()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra = {
            "operation": self.operation_name,
            "duration_seconds": round(time.perf_counter() - self.started, 3),
            **self.extra_fields,
        }

        if exc_val is None:
            self.logger.info(f"Completed: {self.operation_name}", extra=extra)
        else:
            self.logger.error(
                f"Failed: {self.operation_name}: {exc_val}",
                extra={
                    **extra,
                    "error_type": exc_type.__name__,
                    "error_kind": classify_error(exc_val).value,
                },
            )
        return False

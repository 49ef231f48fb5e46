"""
Structured Logging Setup

Logging is configured once at startup through setup_logging(); every module
then asks for a service adapter with get_service_logger(). Child loggers carry
no handlers of their own and propagate to the "relay_reporter" logger.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER_NAME = "relay_reporter"

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "service",
    "message", "taskName", "asctime",
))


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    log_level: str | None = None,
    json_format: bool | None = None,
    stream=None,
) -> logging.Logger:
    """
    Configure the process-wide relay_reporter logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Falls back to
            RELAY_REPORTER_LOG_LEVEL, then INFO.
        json_format: JSON lines when True, plain text when False. Falls back to
            RELAY_REPORTER_LOG_FORMAT ("json" or "text"), then text.
        stream: Output stream, stdout by default

    Returns:
        The configured root logger of the relay_reporter hierarchy
    """
    if log_level is None:
        log_level = os.environ.get("RELAY_REPORTER_LOG_LEVEL", "INFO")
    if json_format is None:
        json_format = os.environ.get("RELAY_REPORTER_LOG_FORMAT", "text").lower() == "json"

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Args:
        service_name: Dotted name below relay_reporter, e.g. "reporter.task"

    Returns:
        Logger adapter with service name in all logs
    """
    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{service_name}")
    return ServiceLoggerAdapter(logger, {"service": service_name})


def log_report(
    logger: logging.LoggerAdapter,
    relay_name: str,
    success: bool,
    duration_ms: float,
    error: Any = None,
) -> None:
    """Log the outcome of one report task"""
    if success:
        logger.debug(
            f"Report for {relay_name} written in {duration_ms:.0f}ms",
            extra={"relay": relay_name, "duration_ms": round(duration_ms, 1)},
        )
    else:
        logger.error(
            f"Report for {relay_name} failed after {duration_ms:.0f}ms: {error}",
            extra={"relay": relay_name, "duration_ms": round(duration_ms, 1)},
        )

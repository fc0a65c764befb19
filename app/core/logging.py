"""
app/core/logging.py

Purpose: Logging configuration

- Standardizes log format
- Controls log levels
- Structured JSON logging in production, phone numbers masked
- Context tracking (phone, state, username) that is safe across asyncio tasks
"""

import logging
import sys
import json
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Any
from app.core.config import settings

CONTEXT_FIELDS = ("phone", "state", "username", "ticket_id")

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("verigate_log_context", default={})


def mask_phone(phone: Any) -> str:
    """
    Keeps the last four digits of a WhatsApp id.

    "+919876543210" -> "***3210", "15550001111@c.us" -> "***1111@c.us"
    """
    value = str(phone)
    number, sep, suffix = value.partition("@")
    if len(number) <= 4:
        return value
    return f"***{number[-4:]}{sep}{suffix}"


class ContextFilter(logging.Filter):
    """
    Copies the active LogContext fields onto each record.
    Explicit `extra` values win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _context_items(record: logging.LogRecord):
    for field in CONTEXT_FIELDS:
        if hasattr(record, field):
            yield field, getattr(record, field)


class StructuredFormatter(logging.Formatter):
    """
    JSON lines for production. Phone numbers are masked.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field, value in _context_items(record):
            log_data[field] = mask_phone(value) if field == "phone" else value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Colored single-line output for local runs.
    """

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname, RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        message = f"{color}[{timestamp}] {record.levelname:<8}{RESET} {record.name}: {record.getMessage()}"

        context_parts = [f"{field}={value}" for field, value in _context_items(record)]
        if context_parts:
            message += f" [{', '.join(context_parts)}]"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging():
    """
    Configures application-wide logging with appropriate formatters.
    Uses JSON format in production, human-readable in development.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    if settings.is_production:
        formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Set third-party loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger = logging.getLogger("verigate")
    logger.info(
        "Logging configured",
        extra={
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "debug_mode": settings.DEBUG
        }
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(f"verigate.{name}")


class LogContext:
    """
    Context manager for adding structured context to logs.

    The context lives in a ContextVar, so every asyncio task sees only
    the fields it entered itself.

    Usage:
        with LogContext(phone="+15550001", state="PENDING"):
            logger.info("Processing code submission")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token = None

    def __enter__(self):
        merged = {**_log_context.get(), **self.context}
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)

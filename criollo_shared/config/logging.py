"""
Structured logging for the El Criollo backend.

Log calls take keyword context (``logger.info("Order created", order_id=7)``).
In production every record is one JSON line; elsewhere a coloured single line
is written. Timestamps use the restaurant's time zone, and the active request
ID is attached by ``CorrelationIdFilter``.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from criollo_shared.config.settings import settings

_ZONE = ZoneInfo(settings.timezone)

# uvicorn and the database driver are chatty at INFO
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def _context(record: logging.LogRecord) -> dict[str, Any] | None:
    return getattr(record, "context", None)


def _request_id(record: logging.LogRecord) -> str | None:
    request_id = getattr(record, "request_id", None)
    return request_id if request_id and request_id != "-" else None


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(_ZONE).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": "el-criollo",
        }
        request_id = _request_id(record)
        if request_id:
            entry["request_id"] = request_id
        context = _context(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            entry["at"] = f"{record.module}.{record.funcName}:{record.lineno}"
        return json.dumps(entry, default=str, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):
    """Coloured single-line output for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"
    GREY = "\033[90m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.now(_ZONE).strftime("%H:%M:%S")
        parts = [f"{self.GREY}{clock}{self.RESET}", f"{color}{record.levelname:<7}{self.RESET}"]

        request_id = _request_id(record)
        if request_id:
            parts.append(f"{self.GREY}{request_id[:8]}{self.RESET}")
        parts.append(f"{record.name} - {record.getMessage()}")

        context = _context(record)
        if context:
            parts.append(" ".join(f"{key}={value!r}" for key, value in context.items()))

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class StructuredLogger(logging.Logger):
    """
    Logger whose methods accept arbitrary keyword context.

    Standard keywords (``exc_info``, ``stack_info``, ``stacklevel``, ``extra``)
    keep their usual meaning; everything else is stored on the record as
    ``context``.
    """

    _RESERVED = ("exc_info", "stack_info", "stacklevel", "extra")

    def _emit(self, level: int, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        if not self.isEnabledFor(level):
            return
        options = {key: kwargs.pop(key) for key in self._RESERVED if key in kwargs}
        extra = dict(options.pop("extra", None) or {})
        extra["context"] = kwargs or None
        options.setdefault("stacklevel", 1)
        options["stacklevel"] += 2
        self._log(level, msg, args, extra=extra, **options)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit(logging.CRITICAL, msg, args, kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """Install the stdout handler on the root logger. Call once at startup."""
    from criollo_shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> StructuredLogger:
    """
    Module logger with keyword context support.

    Usage:
        logger = get_logger(__name__)
        logger.info("Invoice issued", invoice_number="FACT-20250301-0001", total="896.00")
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_email(email: str | None) -> str:
    """``maria.rodriguez@gmail.com`` -> ``ma***@gmail.com``."""
    if not email or "@" not in email:
        return "<sin-correo>"
    local, domain = email.split("@", 1)
    return f"{local[:2] if len(local) > 2 else local[:1]}***@{domain}"


# Area loggers
rest_api_logger = get_logger("criollo_api")
auth_logger = get_logger("criollo_api.auth")
table_logger = get_logger("criollo_api.tables")
reservation_logger = get_logger("criollo_api.reservations")
order_logger = get_logger("criollo_api.orders")
billing_logger = get_logger("criollo_api.billing")
inventory_logger = get_logger("criollo_api.inventory")
email_logger = get_logger("criollo_api.email")

"""
EnergyExporter Logging Module

Structured logging configuration using structlog. Events logged while a
device is being exported carry its device id and measurement.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from energyexporter import __version__

device_id_var: ContextVar[str | None] = ContextVar("device_id", default=None)
measurement_var: ContextVar[str | None] = ContextVar("measurement", default=None)

SENSITIVE_KEYS = ("password", "token", "secret", "authorization")
REDACTED = "***REDACTED***"

# Libraries that log every packet or request at DEBUG
NOISY_LOGGERS = ("paho", "httpx", "httpcore", "asyncio")


def add_device_context(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the device currently being exported."""
    device_id = device_id_var.get()
    if device_id:
        event_dict.setdefault("device_id", device_id)
    measurement = measurement_var.get()
    if measurement:
        event_dict.setdefault("measurement", measurement)
    return event_dict


def add_service_info(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["service"] = "energyexporter"
    event_dict["version"] = __version__
    return event_dict


def format_error(_logger: logging.Logger, _method_name: str, event_dict: EventDict) -> EventDict:
    """
    Replace an exception instance in ``exc_info`` with a structured summary
    under ``error``.

    EnergyExporter errors contribute their code and details; ``exc_info=True``
    is left for structlog's traceback formatting. The ``exception`` key is
    reserved for rendered tracebacks, which the console renderer expects to
    be a string.
    """
    exc_info = event_dict.get("exc_info")
    if not isinstance(exc_info, BaseException):
        return event_dict

    del event_dict["exc_info"]
    error: dict[str, Any] = {"type": type(exc_info).__name__, "message": str(exc_info)}
    if hasattr(exc_info, "to_dict"):
        error.update(exc_info.to_dict())
    event_dict["error"] = error
    return event_dict


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    return any(s in key for s in SENSITIVE_KEYS)


def _censor(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: REDACTED if _is_sensitive(str(k)) else _censor(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_censor(v) for v in value)
    return value


def censor_sensitive_data(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact broker passwords, InfluxDB tokens and similar values at any depth."""
    return _censor(event_dict)


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    development: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output JSON formatted logs
        development: Whether to use development-friendly formatting
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_device_context,
        add_service_info,
        format_error,
        censor_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if development:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    elif json_logs:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Scope log events to one device.

    Usage:
        with LogContext(device_id="1", measurement="solaredge_battery"):
            logger.info("Publishing device")
    """

    def __init__(self, device_id: str | None = None, measurement: str | None = None):
        self.device_id = device_id
        self.measurement = measurement
        self._tokens: list = []

    def __enter__(self) -> "LogContext":
        if self.device_id:
            self._tokens.append(device_id_var.set(self.device_id))
        if self.measurement:
            self._tokens.append(measurement_var.set(self.measurement))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for token in reversed(self._tokens):
            token.var.reset(token)
        self._tokens = []


def log_performance(
    logger: structlog.stdlib.BoundLogger, operation: str, start_time: datetime, **extra: Any
) -> None:
    """Log how long an export round took, with its counters."""
    duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    logger.info(
        f"{operation} completed", operation=operation, duration_ms=round(duration_ms, 2), **extra
    )

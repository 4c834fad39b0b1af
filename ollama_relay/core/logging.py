"""Structured logging module for ollama-relay.

Provides JSON-formatted structured logging using structlog.

Patterns applied:
- Singleton _configured flag prevents reconfiguration
- configure_logging() called ONCE at startup
- Underscore-prefix for unused structlog params
- JSON output via JSONRenderer
- Request ID, trace ID and service name injected via processors

Every log line carries timestamp, level, logger and event; request-scoped
lines additionally carry request_id, and lines logged inside a span carry
trace_id.
"""

import contextvars
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict

from ollama_relay.core.constants import DEFAULT_SERVICE_NAME
from ollama_relay.observability.tracing import get_current_trace_id


# =============================================================================
# Singleton Configuration State
# =============================================================================
_configured: bool = False
_service_name: str = DEFAULT_SERVICE_NAME


# =============================================================================
# Request ID Context
# =============================================================================
_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None) -> contextvars.Token[str | None]:
    """Set request ID for current async context.

    Args:
        request_id: Unique request identifier, or None to clear.

    Returns:
        Token that restores the previous value via reset_request_id().
    """
    return _request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token[str | None]) -> None:
    """Restore the request ID that was current before set_request_id()."""
    _request_id_var.reset(token)


def get_request_id() -> str | None:
    """Get current request ID, None outside a request."""
    return _request_id_var.get()


# =============================================================================
# Custom Processors
# =============================================================================
def add_request_id(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add request ID to log event if set."""
    request_id = get_request_id()
    if request_id is not None:
        event_dict["request_id"] = request_id
    return event_dict


def add_trace_id(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the active OpenTelemetry trace ID, if inside a recording span."""
    trace_id = get_current_trace_id()
    if trace_id is not None:
        event_dict["trace_id"] = trace_id
    return event_dict


def add_service_name(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp every event with the configured service name."""
    event_dict.setdefault("service", _service_name)
    return event_dict


def rename_logger_name(
    _logger: object, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Emit the name bound by get_logger() under the "logger" key."""
    if "logger_name" in event_dict:
        event_dict["logger"] = event_dict.pop("logger_name")
    return event_dict


def _level_to_int(level: str) -> int:
    """Convert log level string to integer.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        Integer log level for structlog filtering.
    """
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# =============================================================================
# Singleton Configuration
# =============================================================================
def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    force: bool = False,
    service_name: str | None = None,
) -> None:
    """Configure structlog ONCE at application startup.

    Subsequent calls are no-ops unless force=True (for testing).

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Output stream. Defaults to sys.stdout.
        force: Force reconfiguration (for testing only).
        service_name: Value of the "service" key on every event.
    """
    global _configured, _service_name

    if _configured and not force:
        return

    if service_name is not None:
        _service_name = service_name

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        rename_logger_name,
        add_service_name,
        add_request_id,
        add_trace_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """Reset configuration state for test isolation."""
    global _configured, _service_name
    _configured = False
    _service_name = DEFAULT_SERVICE_NAME


def get_logger(name: str) -> Any:
    """Get configured logger by name.

    Auto-configures with defaults if not already configured.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Lazy structlog logger; configuration is resolved on every call, so
        module-level loggers follow a later configure_logging(force=True).
    """
    configure_logging()  # No-op if already configured
    # "logger" is wrap_logger's positional parameter and cannot be an initial value
    return structlog.get_logger(logger_name=name)

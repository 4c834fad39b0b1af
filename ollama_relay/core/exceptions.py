"""Custom exceptions for ollama-relay.

Exception Hierarchy:
    RelayError (base)
    ├── RequestError (caller's fault, 4xx)
    │   ├── MalformedRequestError
    │   └── ModelNotResolvedError
    ├── UpstreamError (remote API failures)
    │   ├── UpstreamUnavailableError
    │   └── MidStreamFailureError
    └── ConfigurationError

UpstreamUnavailableError is raised before any response bytes are sent, so
handlers can still pick a status code. MidStreamFailureError is raised after
a 200 has been committed and can only be reported in-band.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """Machine-readable error codes used in responses and logs."""

    RELAY_ERROR = "RELAY_ERROR"

    MALFORMED_REQUEST = "MALFORMED_REQUEST"
    MODEL_NOT_RESOLVED = "MODEL_NOT_RESOLVED"

    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    MID_STREAM_FAILURE = "MID_STREAM_FAILURE"

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class RelayError(Exception):
    """Base exception for all ollama-relay errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str | ErrorCode = ErrorCode.RELAY_ERROR,
        **kwargs: Any,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Request Errors
# =============================================================================


class RequestError(RelayError):
    """Base class for errors caused by the inbound request."""

    pass


class MalformedRequestError(RequestError):
    """Request body is unparsable or misses a required field.

    Attributes:
        field: Name of the offending field, if known.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.MALFORMED_REQUEST,
            **kwargs,
        )
        self.field = field


class ModelNotResolvedError(RequestError):
    """Alias matched no catalog entry and pass-through is disabled.

    Attributes:
        model: The alias the caller asked for.
    """

    def __init__(
        self,
        message: str,
        model: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.MODEL_NOT_RESOLVED,
            **kwargs,
        )
        self.model = model


# =============================================================================
# Upstream Errors
# =============================================================================


class UpstreamError(RelayError):
    """Base class for failures of the remote completions API.

    Attributes:
        operation: Upstream operation that failed (list_models, chat_stream, ...).
        status_code: HTTP status returned by the upstream, if any.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status_code: int | None = None,
        error_code: str | ErrorCode = ErrorCode.RELAY_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=error_code, **kwargs)
        self.operation = operation
        self.status_code = status_code


class UpstreamUnavailableError(UpstreamError):
    """Upstream listing or stream could not be established.

    The message carries the upstream error text verbatim.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            status_code=status_code,
            error_code=ErrorCode.UPSTREAM_UNAVAILABLE,
            **kwargs,
        )


class MidStreamFailureError(UpstreamError):
    """Upstream stream broke after response chunks were already sent."""

    def __init__(
        self,
        message: str,
        operation: str | None = "chat_stream",
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.MID_STREAM_FAILURE,
            **kwargs,
        )


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(RelayError):
    """Service configuration is invalid.

    Attributes:
        setting: Name of the problematic setting.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            **kwargs,
        )
        self.setting = setting

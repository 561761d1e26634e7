"""
Consolidated exception system with error codes, context, and correlation support.

This module provides a unified exception hierarchy for the client, with
automatic logging and correlation ID tracking. Request failures carry the HTTP
status, the server-provided message, details and request id so the
presentation layer can display them.
"""

import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# Removed logger import to avoid circular dependency - calling code should handle logging

# Context-local storage for correlation ID (one value per asyncio task)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class ErrorCode(str, Enum):
    """Standardized error codes for structured errors."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    CONNECTION_ERROR = "1002"
    CONFIGURATION_ERROR = "1003"
    TIMEOUT_ERROR = "1004"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"
    TYPE_MISMATCH = "2003"
    MISSING_SELECTION = "2005"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    CONFLICT = "3002"
    EXPIRED = "3004"
    LIMIT_EXCEEDED = "3005"

    # Auth errors (4xxx)
    PERMISSION_DENIED = "4003"
    AUTH_EXPIRED = "4010"
    SESSION_DEAD = "4011"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"
    DOWNSTREAM_ERROR = "5004"
    UNEXPECTED_RESPONSE = "5005"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code associated with the failure
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        # Add correlation ID if available
        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        # Add error ID to context
        self.context["error_id"] = self.error_id

        # Add cause to context if present
        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        # Log the error (using lazy import to avoid circular dependencies)
        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(
        self, include_cause: bool = False, include_traceback: bool = False
    ) -> Dict[str, Any]:
        """
        Convert to dict for presentation-layer display.

        Args:
            include_cause: Include cause information (useful for debugging)
            include_traceback: Include full traceback (only in debug mode)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "status": self.status_code,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }
            if include_traceback:
                result["error"]["cause"]["traceback"] = self.context["cause"]["traceback"]

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# ==================== REQUEST PIPELINE EXCEPTIONS ====================


class ApiRequestError(BaseError):
    """A request that completed with a non-successful status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[Any] = None,
        request_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize a request error with the server-provided detail.

        Args:
            message: Surfaced error text
            status_code: HTTP status of the (possibly retried) response
            details: Server-provided detail payload, if any
            request_id: Server-provided request id, if any
            endpoint: Endpoint that was called
            error_code: Standardized error code
            cause: Original exception if any
            **context: Additional context
        """
        self.details = details
        self.request_id = request_id
        self.endpoint = endpoint
        if endpoint:
            context["endpoint"] = endpoint
        if request_id:
            context["request_id"] = request_id
        super().__init__(message, error_code, status_code, cause, **context)

    @property
    def status(self) -> int:
        """HTTP status of the failed response."""
        return self.status_code


class AuthExpiredError(ApiRequestError):
    """401/403 that survived the single refresh-and-retry."""

    def __init__(self, message: str = "Your session has expired. Please log in again.", **kwargs):
        kwargs.setdefault("status_code", 401)
        super().__init__(message, error_code=ErrorCode.AUTH_EXPIRED, **kwargs)


class UsageLimitError(ApiRequestError):
    """Plan-limit style rejection from the backend."""

    def __init__(self, message: str = "Usage limit exceeded", **kwargs):
        kwargs.setdefault("status_code", 429)
        super().__init__(message, error_code=ErrorCode.LIMIT_EXCEEDED, **kwargs)


class TransientServerError(ApiRequestError):
    """5xx response; surfaced as-is without automatic retry."""

    def __init__(self, message: str = "The server encountered an error", **kwargs):
        kwargs.setdefault("status_code", 500)
        super().__init__(message, error_code=ErrorCode.DOWNSTREAM_ERROR, **kwargs)


class NetworkError(BaseError):
    """The transport failed before a response was received."""

    def __init__(
        self,
        message: str = "Network request failed",
        endpoint: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        if endpoint:
            context["endpoint"] = endpoint
        super().__init__(message, ErrorCode.CONNECTION_ERROR, 503, cause, **context)


class SessionDeadError(BaseError):
    """The refresh call itself failed; the session has been torn down."""

    def __init__(
        self,
        message: str = "Session expired. Please log in again.",
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        super().__init__(message, ErrorCode.SESSION_DEAD, 401, cause, **context)


class ResponseShapeError(BaseError):
    """A response body matched none of the accepted shapes."""

    def __init__(self, message: str, cause: Optional[Exception] = None, **context: Any):
        super().__init__(message, ErrorCode.UNEXPECTED_RESPONSE, 502, cause, **context)


# ==================== VALIDATION EXCEPTIONS ====================


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize validation error with field context."""
        self.field = field
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class FormValidationError(ValidationError):
    """One or more fields of a submission failed client-side validation."""

    def __init__(
        self,
        field_errors: Dict[str, str],
        table: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        **context,
    ):
        """
        Initialize with the per-field messages.

        Args:
            field_errors: Mapping of field name to message, in form order
            table: Table the submission targeted
            error_code: MISSING_SELECTION when a reference was left unselected
            **context: Additional context
        """
        self.field_errors = dict(field_errors)
        first_field = next(iter(self.field_errors), None)
        message = self.field_errors[first_field] if first_field else "Validation failed"
        if table:
            context["table"] = table
        context["field_errors"] = self.field_errors
        super().__init__(message, field=first_field, error_code=error_code, **context)


# ==================== FACTORY FUNCTIONS ====================


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


def not_found(resource_type: str, cause: Optional[Exception] = None, **identifiers) -> ApiRequestError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., table name)
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., id='123')

    Returns:
        Configured ApiRequestError instance with 404 status
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return ApiRequestError(
        message,
        status_code=404,
        error_code=ErrorCode.NOT_FOUND,
        cause=cause,
        resource_type=resource_type,
        **identifiers,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get the current context's correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the current context's correlation ID."""
    _correlation_id.set(None)

"""
Exception hierarchy with error codes, context, and correlation support.

Every error raised by the gateway derives from BaseError, which records a
unique error id, the underlying cause and arbitrary context, and logs itself
at a level matching its status code.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import AuthStage

# Logger is imported lazily in BaseError to avoid a circular import

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    CONNECTION_ERROR = "1002"
    TIMEOUT_ERROR = "1004"
    CANCELLED = "1005"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    DUPLICATE = "3001"

    # Business logic errors (4xxx)
    PERMISSION_DENIED = "4003"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"
    RETRIES_EXHAUSTED = "5005"


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
            status_code: HTTP status code for API responses
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

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

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

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause information (useful for debugging)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
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

        return result

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


class ValidationError(BaseError):
    """A document failed local pre-flight validation; nothing was sent."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        **context,
    ):
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])
        if field:
            context["field"] = field
        super().__init__(
            message, error_code, 400, errors=self.errors, warnings=self.warnings, **context
        )


class AuthenticationError(BaseError):
    """Credentials or registration identifier rejected at one login stage."""

    def __init__(
        self,
        message: str,
        stage: AuthStage,
        details: Optional[List[Dict[str, Any]]] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        self.stage = stage
        self.details = list(details or [])
        super().__init__(
            message,
            ErrorCode.PERMISSION_DENIED,
            401,
            cause,
            stage=stage.value,
            details=self.details,
            **context,
        )


class PortalError(BaseError):
    """Base for failures reported by, or on the way to, the tax portal."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        status_code: int = 502,
        cause: Optional[Exception] = None,
        **context,
    ):
        context["service_name"] = "tax_portal"
        super().__init__(message, error_code, status_code, cause, **context)


class TransportError(PortalError):
    """Network failure or unusable portal response; retried by the executor."""

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        cause: Optional[Exception] = None,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        **context,
    ):
        self.http_status = http_status
        super().__init__(message, error_code, 502, cause, http_status=http_status, **context)


class ClientError(PortalError):
    """The portal rejected the request as malformed or invalid. Never retried."""

    def __init__(
        self,
        message: str,
        status: int,
        response_body: Any = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        **context,
    ):
        self.status = status
        self.response_body = response_body
        super().__init__(message, error_code, status, None, portal_status=status, **context)


class DuplicateDocumentError(ClientError):
    """The portal already holds a reference number for this document."""

    def __init__(
        self,
        message: str,
        status: int,
        details: Optional[List[Dict[str, Any]]] = None,
        response_body: Any = None,
        **context,
    ):
        self.details = list(details or [])
        super().__init__(
            message,
            status,
            response_body=response_body,
            error_code=ErrorCode.DUPLICATE,
            details=self.details,
            **context,
        )


class RequestError(PortalError):
    """Retries exhausted against transient failures."""

    def __init__(self, message: str, last_cause: Optional[Exception] = None, **context):
        self.last_cause = last_cause
        super().__init__(message, ErrorCode.RETRIES_EXHAUSTED, 503, last_cause, **context)


class CancelledError(BaseError):
    """The caller cancelled the operation at a suspension point."""

    def __init__(self, message: str = "Operation cancelled", **context):
        super().__init__(message, ErrorCode.CANCELLED, 499, **context)


def validation_failed(field: str, value: Any, reason: str) -> ValidationError:
    """
    Factory for single-field validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        errors=[f"{field}: {reason}"],
        field=field,
        error_code=ErrorCode.INVALID_FORMAT,
        value=str(value),
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")

"""
AuthorFeed Custom Exceptions
============================

Exception hierarchy for the ingestion pipeline with error codes, context
information, user-friendly messages and an explicit caller-facing kind.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Database errors (D001-D099)
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"
    FEED_BAD_STATUS = "F007"
    FEED_STRUCTURE_INVALID = "F008"

    # Normalization errors (N001-N099)
    ITEM_MISSING_FIELD = "N001"
    ITEM_INVALID_DATE = "N002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # System errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S002"
    SYSTEM_MEMORY_ERROR = "S004"
    UNEXPECTED = "S999"


class ErrorKind(str, Enum):
    """Caller-facing classification of a failure."""

    OUT_OF_RANGE = "out_of_range"
    INVALID_ARGUMENT = "invalid_argument"
    INTERNAL = "internal"


class AuthorFeedError(Exception):
    """Base exception for all AuthorFeed errors.

    Subclasses set ``kind`` and their defaults as class attributes; callers
    may override the code, user message and recoverability per instance.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: Optional[ErrorCode] = None
    default_user_message: Optional[str] = None
    default_recoverable: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
    ):
        """Initialize AuthorFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code (class default when omitted)
            context: Additional context information
            user_message: Message safe to show to a user
            recoverable: Whether retrying later may succeed
        """
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})
        self.user_message = user_message or self.default_user_message or message
        self.recoverable = self.default_recoverable if recoverable is None else recoverable

    def _add_context(self, **values: Any) -> None:
        self.context.update({k: v for k, v in values.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "error_kind": self.kind.value,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        message = super().__str__()
        if self.error_code:
            return f"[{self.error_code.value}] {message}"
        return message


class ConfigurationError(AuthorFeedError):
    """Settings are missing or unusable."""

    kind = ErrorKind.INVALID_ARGUMENT
    default_code = ErrorCode.CONFIG_INVALID

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, **kwargs)
        self._add_context(config_key=config_key)


class ValidationError(AuthorFeedError):
    """Caller input (username, limit) was rejected."""

    kind = ErrorKind.INVALID_ARGUMENT
    default_code = ErrorCode.VALIDATION_INVALID_FORMAT

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        kwargs.setdefault("user_message", f"Invalid {field_name or 'input'}: {message}")
        super().__init__(message, **kwargs)
        self._add_context(field_name=field_name)


class FetchError(AuthorFeedError):
    """Feed retrieval failed at the transport or HTTP status level."""

    kind = ErrorKind.OUT_OF_RANGE
    default_code = ErrorCode.FEED_NETWORK_ERROR
    default_user_message = "Unable to fetch author feed"
    default_recoverable = True

    def __init__(
        self,
        message: str,
        feed_url: Optional[str] = None,
        status: Optional[int] = None,
        **kwargs,
    ):
        """Initialize fetch error.

        Args:
            message: Error message
            feed_url: Feed URL that was requested
            status: HTTP status code, when a response was received
            **kwargs: Additional arguments for AuthorFeedError
        """
        super().__init__(message, **kwargs)
        self.status = status
        self._add_context(feed_url=feed_url, status=status)


class ParseError(AuthorFeedError):
    """Feed document is malformed or structurally unexpected."""

    kind = ErrorKind.INVALID_ARGUMENT
    default_code = ErrorCode.FEED_PARSE_ERROR
    default_user_message = "Error parsing feed data"


class NormalizationError(AuthorFeedError):
    """A single feed item cannot be converted to a canonical article."""

    kind = ErrorKind.INVALID_ARGUMENT
    default_code = ErrorCode.ITEM_MISSING_FIELD
    default_user_message = "Feed item skipped"
    default_recoverable = True

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        guid: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.field_name = field_name
        self._add_context(field_name=field_name, guid=guid or None)


class PersistenceError(AuthorFeedError):
    """Any failure raised by the storage facade."""

    kind = ErrorKind.INTERNAL
    default_code = ErrorCode.DATABASE_ERROR
    default_user_message = "Database error occurred"
    default_recoverable = True

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_context(query=query)


# Exception handling utilities

# Builtin exception type -> (code, user message, recoverable)
_SYSTEM_ERRORS = (
    (PermissionError, ErrorCode.SYSTEM_PERMISSION_DENIED, "Access denied", False),
    (MemoryError, ErrorCode.SYSTEM_MEMORY_ERROR, "System resources exhausted", True),
)


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> AuthorFeedError:
    """Classify an exception as an AuthorFeedError and log it.

    AuthorFeed errors are logged and returned unchanged; anything else is
    wrapped as kind INTERNAL. Classification uses the exception type only.

    Args:
        exception: Original exception
        logger: Logger (or adapter) to report through
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        The classified error, ready to be raised
    """
    if isinstance(exception, AuthorFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    context = {
        **(context or {}),
        "operation": operation,
        "original_exception_type": type(exception).__name__,
    }

    code, user_message, recoverable = ErrorCode.UNEXPECTED, "An unexpected error occurred", True
    for exc_type, exc_code, exc_message, exc_recoverable in _SYSTEM_ERRORS:
        if isinstance(exception, exc_type):
            code, user_message, recoverable = exc_code, exc_message, exc_recoverable
            break

    error = AuthorFeedError(
        message=f"{operation} failed with {type(exception).__name__}: {exception}",
        error_code=code,
        context=context,
        user_message=user_message,
        recoverable=recoverable,
    )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict(), exc_info=exception)
    return error

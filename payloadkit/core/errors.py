"""Error Hierarchy: typed, categorized exceptions for every codec failure mode.

Invariants:
    - Every error has a code (ErrorKind), category (ErrorCategory), severity (ErrorSeverity)
    - str(error) is the human-readable message placed in the ErrorJSON envelope
    - Client errors (4xx) are recoverable; caller/programming errors (5xx) are critical
    - headers holds response headers the error requires (e.g. Connection: close)

Design Decisions:
    - Single hierarchy with PayloadError base: one FastAPI handler catches all of them
    - DecodeError / EncodeError split so callers can catch one path without listing kinds
    - ErrorContext as dataclass: offsets and limits available to logs without parsing messages
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from payloadkit.core.domain_types import ErrorKind


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    MEDIA_TYPE = "media_type"
    SIZE_LIMIT = "size_limit"
    VALIDATION = "validation"
    CALLER = "caller"
    SERIALIZATION = "serialization"


@dataclass
class ErrorContext:
    """Where and why a payload was rejected."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    field: str | None = None
    offset: int | None = None
    limit: int | None = None
    content_type: str | None = None
    debug_info: dict[str, Any] | None = None


class PayloadError(Exception):
    """Base exception for all codec errors."""

    def __init__(
        self,
        message: str,
        code: ErrorKind,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 400,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.headers = headers or {}

    @property
    def kind(self) -> ErrorKind:
        return self.code

    def log_extra(self) -> dict:
        """Fields surfaced by the JSON log formatter."""
        extra: dict[str, Any] = {"error_code": self.code.value}
        for key in ("field", "offset", "limit"):
            value = getattr(self.context, key)
            if value is not None:
                extra[key] = value
        return extra


class DecodeError(PayloadError):
    """Request body was rejected by the decoder."""


class EncodeError(PayloadError):
    """Response payload could not be encoded."""


# ─── Decode Errors ──────────────────────────────────────────────

class UnsupportedMediaTypeError(DecodeError):
    """Content-Type header is present but is not application/json."""
    def __init__(self, content_type: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.content_type = content_type
        super().__init__(
            "the Content-Type header is not application/json",
            ErrorKind.UNSUPPORTED_MEDIA_TYPE, ErrorCategory.MEDIA_TYPE,
            ErrorSeverity.ERROR, ctx, 415,
        )


class BodyTooLargeError(DecodeError):
    """Body exceeded the configured byte budget."""
    def __init__(self, limit: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.limit = limit
        super().__init__(
            f"body must not be larger than {limit} bytes",
            ErrorKind.BODY_TOO_LARGE, ErrorCategory.SIZE_LIMIT,
            ErrorSeverity.ERROR, ctx, 413, {"Connection": "close"},
        )
        self.limit = limit


class EmptyBodyError(DecodeError):
    """Body ended before any JSON value started."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "body must not be empty",
            ErrorKind.EMPTY_BODY, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class SyntaxOrTypeError(DecodeError):
    """Malformed JSON, or a value of the wrong type for its field."""
    def __init__(
        self,
        message: str,
        offset: int | None = None,
        field: str | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.offset = offset
        ctx.field = field
        super().__init__(
            message, ErrorKind.SYNTAX_OR_TYPE, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.offset = offset
        self.field = field


class UnknownFieldError(DecodeError):
    """Object key does not match any field of the target shape."""
    def __init__(self, key: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field = key
        super().__init__(
            f'body contains unknown key "{key}"',
            ErrorKind.UNKNOWN_FIELD, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.key = key


class TrailingDataError(DecodeError):
    """More content followed the first top-level JSON value."""
    def __init__(self, offset: int | None = None, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.offset = offset
        super().__init__(
            "body must only contain a single JSON value",
            ErrorKind.TRAILING_DATA, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.offset = offset


class NilTargetError(DecodeError):
    """Caller passed no destination, or one the decoder cannot populate."""
    def __init__(
        self, reason: str = "target must not be None", context: ErrorContext | None = None,
    ):
        super().__init__(
            f"error unmarshalling JSON: {reason}",
            ErrorKind.NIL_TARGET, ErrorCategory.CALLER,
            ErrorSeverity.CRITICAL, context, 500,
        )


# ─── Encode Errors ──────────────────────────────────────────────

class UnmarshalableError(EncodeError):
    """Payload holds a value with no JSON representation."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"payload cannot be encoded as JSON: {reason}",
            ErrorKind.UNMARSHALABLE, ErrorCategory.SERIALIZATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.reason = reason

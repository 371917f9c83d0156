"""
NoteCraft Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every error scenario the API reports.
Why:   Custom exceptions carry the HTTP meaning with them, so services can raise
       and the global handlers (registered in main.py) translate to JSON.
How:   Each exception class carries a user-facing message and an optional
       context dict. Context is logged server-side and only returned for
       client errors where it helps the caller fix the request.

Exception Hierarchy:
    NoteCraftError (base)
    ├── ValidationError              → 400 Bad Request
    │   ├── OutOfRangeError          → 400 (issue span outside the text)
    │   └── OverlappingIssuesError   → 400 (batch has intersecting spans)
    ├── AuthError                    → 401 Unauthorized
    ├── NotFoundError                → 404 Not Found
    ├── StaleSnapshotError           → 409 Conflict
    ├── RateLimitExceededError       → 429 Too Many Requests
    ├── UpstreamError                → 413 / 429 / 502 (third-party AI failure)
    │   └── CircuitBreakerOpenError  → 503 Service Unavailable
    └── InternalError                → 500 Internal Server Error
        └── DatabaseError            → 500
"""

import enum
from typing import Any, Dict, Optional


class NoteCraftError(Exception):
    """
    Base exception for all NoteCraft application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteCraftError):
    """
    Raised when client input fails validation.

    When:    Empty content, unsupported style, malformed credentials, bad offsets.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class OutOfRangeError(ValidationError):
    """
    An issue's span does not fit inside the text it is applied to.

    This is how a stale batch (generated before the text was edited) shows up:
    the applier refuses instead of clamping, so the text is never corrupted.
    """

    def __init__(
        self,
        offset: int,
        length: int,
        text_length: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"offset": offset, "length": length, "text_length": text_length})
        super().__init__(
            message=(
                f"Correction at offset {offset} with length {length} does not fit "
                f"in text of length {text_length}. Re-run the check on the current text."
            ),
            field="issues",
            context=ctx,
        )
        self.offset = offset
        self.length = length
        self.text_length = text_length


class OverlappingIssuesError(ValidationError):
    """Raised when a batch contains issues whose spans intersect."""

    def __init__(self, pairs: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["overlapping_pairs"] = pairs
        super().__init__(
            message=(
                "Some corrections overlap each other and cannot be applied together. "
                "Apply them one at a time instead."
            ),
            field="issues",
            context=ctx,
        )
        self.pairs = pairs


class AuthReason(str, enum.Enum):
    """Why a bearer credential was rejected."""

    MISSING = "missing"
    EXPIRED = "expired"
    INVALID = "invalid"


class AuthError(NoteCraftError):
    """
    Raised when the bearer credential is missing, expired, or invalid.

    HTTP:    401 Unauthorized

    The three reasons get distinct user-facing messages so the SPA can tell
    the user what happened, but every one of them denies access the same way.
    """

    MESSAGES = {
        AuthReason.MISSING: "Authentication required. Please log in.",
        AuthReason.EXPIRED: "Session expired. Please log in again.",
        AuthReason.INVALID: "Invalid token. Please log in again.",
    }

    def __init__(self, reason: AuthReason, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["reason"] = reason.value
        super().__init__(message=self.MESSAGES[reason], context=ctx)
        self.reason = reason


class NotFoundError(NoteCraftError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found

    A note owned by someone else is reported exactly like a missing one, so
    the response never confirms that an ID exists.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StaleSnapshotError(NoteCraftError):
    """
    Raised when corrections were generated against a different version of the text.

    HTTP:    409 Conflict
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=(
                "The note has changed since it was checked. "
                "Run the grammar check again before applying corrections."
            ),
            context=context,
        )


class RateLimitExceededError(NoteCraftError):
    """
    Raised when a client exceeds a rate limit (global per-IP or failed logins).

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = message or (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class UpstreamError(NoteCraftError):
    """
    Raised when a third-party AI or grammar service fails.

    HTTP:    status_code (413 and 429 are passed through from the provider,
             everything else is reported as 502 Bad Gateway).
    """

    def __init__(
        self,
        message: str = "The AI service failed to process the request. Please try again later.",
        status_code: int = 502,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.retry_after = retry_after


class CircuitBreakerOpenError(UpstreamError):
    """
    Raised when the circuit breaker is in OPEN state.

    HTTP:    503 Service Unavailable

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_time seconds)
        → After recovery_time → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"AI service is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, status_code=503, context=ctx)
        self.recovery_time = recovery_time


class InternalError(NoteCraftError):
    """
    Unexpected server-side failure.

    HTTP:    500. The response message is always generic; details stay in the logs.
    """

    def __init__(
        self,
        message: str = "An internal error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(InternalError):
    """Raised when database operations fail unexpectedly."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

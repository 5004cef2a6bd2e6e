"""Error Hierarchy — typed, categorized exceptions for every TalkHub failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Caller errors (400-level) are recoverable by resubmitting; storage errors are not
    - to_response() produces the single REST error envelope used by all handlers
    - Conflict messages name the specific conflict ("already approved", "lecture is full")

Design Decisions:
    - Single hierarchy with TalkHubError base: one FastAPI handler catches all
    - ErrorContext carries the record ids involved so handlers can log them
      without parsing messages
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Record ids and debug data attached to an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None
    lecture_id: str | None = None
    member_id: str | None = None
    debug_info: dict[str, Any] | None = None


class TalkHubError(Exception):
    """Base exception for all TalkHub errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "request_id": self.context.request_id,
                "lecture_id": self.context.lecture_id,
            },
        }
        field_name = getattr(self, "field", None)
        if field_name:
            body["field"] = field_name
        return {"error": body}


# ─── Caller Errors (400-level) ──────────────────────────────────

class ValidationError(TalkHubError):
    """Missing or malformed input field."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class ResourceNotFoundError(TalkHubError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(TalkHubError):
    """Operation is not allowed in the record's current state."""
    def __init__(
        self, message: str, code: str = "CONFLICT", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class AlreadyDecidedError(ConflictError):
    """Talk request has left the pending state."""
    def __init__(self, decision: str, context: ErrorContext | None = None):
        super().__init__(
            f"This request has already been {decision}",
            "ALREADY_DECIDED", context,
        )
        self.decision = decision


class RegistrationClosedError(ConflictError):
    """Lecture is not accepting registrations (status, start time or capacity)."""
    def __init__(
        self, reason: str, code: str = "REGISTRATION_CLOSED",
        context: ErrorContext | None = None,
    ):
        super().__init__(f"Registration closed: {reason}", code, context)
        self.reason = reason


class AlreadyRegisteredError(ConflictError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Already registered for this lecture", "ALREADY_REGISTERED", context,
        )


class InvalidStatusTransitionError(ConflictError):
    """Stored lecture status does not allow the requested transition."""
    def __init__(self, current: str, target: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot change lecture status from '{current}' to '{target}'",
            "INVALID_STATUS_TRANSITION", context,
        )
        self.current = current
        self.target = target


class ConcurrencyError(TalkHubError):
    """Concurrent modification detected and not resolved within the retry bound."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class AuthenticationError(TalkHubError):
    """Caller identity could not be resolved."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message, "AUTHENTICATION_REQUIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, None, 401,
        )


class PermissionDeniedError(TalkHubError):
    """Caller is authenticated but lacks the required role or ownership."""
    def __init__(self, message: str = "Access denied: Admin privileges required"):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, None, 403,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(TalkHubError):
    """Database operation failed. Never retried by this service."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.operation = operation

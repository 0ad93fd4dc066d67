"""Error Hierarchy — typed, categorized exceptions for all carnet failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; store errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages
    - Import row/lot failures are NOT exceptions; they are reported as data

Design Decisions:
    - Single hierarchy with CarnetsError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    STORE = "store"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    carnet_id: str | None = None
    lot_number: str | None = None
    row: int | None = None
    debug_info: dict[str, Any] | None = None


class CarnetsError(Exception):
    """Base exception for all carnet errors."""

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
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "carnet_id": self.context.carnet_id,
                    "lot_number": self.context.lot_number,
                    "row": self.context.row,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class CarnetValidationError(CarnetsError):
    """Carnet or member input failed validation.

    field_errors maps "<field>-<memberIndex>" to a human-readable reason,
    consumed verbatim by the form layer.
    """
    def __init__(
        self, field_errors: dict[str, str], context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Carnet validation failed ({len(field_errors)} field(s))",
            "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field_errors = field_errors

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["field_errors"] = self.field_errors
        return response


class ResourceNotFoundError(CarnetsError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StoreError(CarnetsError):
    """Record store read/write failed on every configured backend."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Record store {operation} failed: {message}",
            "STORE_ERROR", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class DatabaseError(StoreError):
    """Database operation failed (primary store backend)."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        CarnetsError.__init__(
            self, f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation

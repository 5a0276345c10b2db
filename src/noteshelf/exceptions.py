"""Custom exceptions for the noteshelf service.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Every error also carries the
status code a transport layer should answer with.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_UNAUTHORIZED = 1002

    # Tag errors (3xxx)
    TAG_NOT_FOUND = 3001

    # Storage errors (4xxx)
    STORAGE_INVARIANT_VIOLATED = 4001

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class NoteshelfError(Exception):
    """Base exception for all noteshelf errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
        status_code: Response status a transport should map this error to
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "status": self.status_code,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(NoteshelfError):
    """Raised when a note id does not resolve to a live note."""

    status_code = 404

    def __init__(self, note_id: int, message: Optional[str] = None):
        super().__init__(
            message or "Note does not exist",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class UnauthorizedError(NoteshelfError):
    """Raised when a note exists but belongs to another user."""

    status_code = 401

    def __init__(self, note_id: int, user_id: int, message: Optional[str] = None):
        super().__init__(
            message or "Note belongs to other user",
            code=ErrorCode.NOTE_UNAUTHORIZED,
            details={"note_id": note_id, "user_id": user_id}
        )
        self.note_id = note_id
        self.user_id = user_id


class TagNotFoundError(NoteshelfError):
    """Raised when a tag-scoped query names a label that was never created."""

    status_code = 400

    def __init__(self, label: str, message: Optional[str] = None):
        super().__init__(
            message or "Tag does not exist",
            code=ErrorCode.TAG_NOT_FOUND,
            details={"label": label[:100]}  # Truncate for safety
        )
        self.label = label


class InvariantViolationError(NoteshelfError):
    """Raised when a storage operation targets state that cannot exist.

    Updating a note slot that was never allocated is the typical case.
    Callers are expected to check existence first, so this signals a
    programming or integrity error rather than bad client input.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        note_id: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if note_id is not None:
            details["note_id"] = note_id

        super().__init__(
            message, code=ErrorCode.STORAGE_INVARIANT_VIOLATED, details=details
        )
        self.operation = operation
        self.note_id = note_id


class ConfigurationError(NoteshelfError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key

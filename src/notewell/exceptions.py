"""Custom exceptions for Notewell.

Provides a structured exception hierarchy with error codes and
machine-readable error information. These never cross the public boundary
of the collection service: it converts them into Operation outcomes.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002
    NOTE_TITLE_REQUIRED = 1004

    # Notebook errors (2xxx)
    NOTEBOOK_NOT_FOUND = 2001
    NOTEBOOK_NAME_REQUIRED = 2002

    # Collection errors (3xxx)
    COLLECTION_NOT_FOUND = 3001
    COLLECTION_INVALID_NAME = 3002
    COLLECTION_NOT_INITIALIZED = 3003
    STORAGE_DIRECTORY_MISSING = 3004

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003
    STORAGE_CONNECTION_FAILED = 4004

    # Relay errors (5xxx)
    RELAY_MISSING_CALLBACK = 5001
    RELAY_UNEXPECTED_CALLBACK = 5002
    RELAY_TIMEOUT = 5003
    RELAY_CHANNEL_FULL = 5004

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    PATH_TRAVERSAL_DETECTED = 7005


class NotewellError(Exception):
    """Base exception for all Notewell errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

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
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(NotewellError):
    """Raised when a note cannot be found."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID '{note_id}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class NotebookNotFoundError(NotewellError):
    """Raised when a notebook cannot be found."""

    def __init__(self, notebook_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Notebook with ID '{notebook_id}' not found",
            code=ErrorCode.NOTEBOOK_NOT_FOUND,
            details={"notebook_id": notebook_id}
        )
        self.notebook_id = notebook_id


class CollectionError(NotewellError):
    """Raised for collection lifecycle errors."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        code: ErrorCode = ErrorCode.COLLECTION_NOT_FOUND
    ):
        details = {}
        if collection:
            details["collection"] = collection

        super().__init__(message, code=code, details=details)
        self.collection = collection


class StorageError(NotewellError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            # Don't expose full paths in error messages
            details["path_hint"] = path.replace("\\", "/").split("/")[-1]
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class ValidationError(NotewellError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class RelayError(NotewellError):
    """Raised when a relay message is malformed or a cross-window call fails."""

    def __init__(
        self,
        message: str,
        event: Optional[str] = None,
        code: ErrorCode = ErrorCode.RELAY_MISSING_CALLBACK
    ):
        details = {}
        if event:
            details["event"] = event

        super().__init__(message, code=code, details=details)
        self.event = event

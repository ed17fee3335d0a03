"""Custom error types for the chat service."""

from typing import Optional, Dict, Any
from enum import Enum
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    NOT_FOUND = "not_found"
    KNOWLEDGE = "knowledge"
    GENERATION = "generation"
    UNKNOWN = "unknown"


class ChatServiceError(Exception):
    """Base exception for failures surfaced to callers of the data layer."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error": self.message,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(ChatServiceError):
    """Missing or invalid configuration. Fatal at startup."""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {}
        if setting:
            details["setting"] = setting

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            details=details,
            recoverable=False,
        )


class StorageError(ChatServiceError):
    """Session store read or write failure."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if session_id:
            details["session_id"] = session_id

        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            details=details,
            recoverable=True,  # Storage errors might be temporary
        )


class SessionNotFoundError(StorageError):
    """The session record does not exist in the store."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Session '{session_id}' does not exist",
            operation="lookup",
            session_id=session_id,
        )
        self.category = ErrorCategory.NOT_FOUND
        self.recoverable = False
        self.session_id = session_id


class KnowledgeSearchError(ChatServiceError):
    """Embedding or similarity search failure."""

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            category=ErrorCategory.KNOWLEDGE,
            details=details,
            recoverable=True,
        )


class GenerationError(ChatServiceError):
    """LLM reply generation failure."""

    def __init__(self, message: str, model: Optional[str] = None):
        details = {}
        if model:
            details["model"] = model

        super().__init__(
            message=message,
            category=ErrorCategory.GENERATION,
            details=details,
            recoverable=True,
        )

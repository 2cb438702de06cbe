# =============================================================================
# lab_core/errors/exceptions.py
# Custom Exception Hierarchy for the Lab Borrowing Tracker
# =============================================================================

from typing import Optional, Dict, Any


class LabTrackerError(Exception):
    """
    Base exception for all data-layer errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "REMOTE_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "LAB_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# STORAGE EXCEPTIONS
# =============================================================================

class RemoteUnavailable(LabTrackerError):
    """Raised when the remote store cannot be reached or rejects a call"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            code="REMOTE_001",
            details=details,
            **kwargs,
        )


class ParseFailure(LabTrackerError):
    """Raised when a persisted snapshot cannot be decoded"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="CACHE_001",
            details=details,
            **kwargs,
        )


class NotFound(LabTrackerError):
    """Update-by-id with no matching record (logged, never surfaced)"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if record_id:
            details["record_id"] = record_id

        super().__init__(
            message=message,
            code="DATA_404",
            details=details,
            **kwargs,
        )


# =============================================================================
# AUTHENTICATION & WORKFLOW EXCEPTIONS
# =============================================================================

class AuthenticationRejected(LabTrackerError):
    """Wrong password or disallowed domain (callers receive None instead)"""

    def __init__(
        self,
        message: str,
        email: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if email:
            details["email"] = email
        if reason:
            details["reason"] = reason

        super().__init__(
            message=message,
            code="AUTH_001",
            details=details,
            **kwargs,
        )


class WorkflowError(LabTrackerError):
    """Raised when a borrow request cannot move to the requested status"""

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        current: Optional[str] = None,
        target: Optional[str] = None,
        code: str = "REQ_002",
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if request_id:
            details["request_id"] = request_id
        if current:
            details["current"] = current
        if target:
            details["target"] = target

        super().__init__(
            message=message,
            code=code,
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(LabTrackerError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )

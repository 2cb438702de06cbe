# =============================================================================
# lab_core/errors/__init__.py
# Centralized Error Handling for the Lab Borrowing Tracker
# =============================================================================

from .exceptions import (
    LabTrackerError,
    RemoteUnavailable,
    ParseFailure,
    AuthenticationRejected,
    NotFound,
    WorkflowError,
    ConfigurationError,
)

from .handlers import handle_error

__all__ = [
    # Exceptions
    "LabTrackerError",
    "RemoteUnavailable",
    "ParseFailure",
    "AuthenticationRejected",
    "NotFound",
    "WorkflowError",
    "ConfigurationError",
    # Handlers
    "handle_error",
]

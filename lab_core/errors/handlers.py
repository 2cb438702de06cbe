# =============================================================================
# lab_core/errors/handlers.py
# Error Handling Utilities
# =============================================================================

from __future__ import annotations
import traceback
from typing import Any, Dict, Optional

from lab_core.logging import get_logger
from .exceptions import LabTrackerError

logger = get_logger(__name__)


def handle_error(
    error: Exception,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        log_error: Whether to log the error
        user_message: Custom message (uses error message if None)

    Returns:
        Dict describing the error, suitable for a ServiceResult or UI banner
    """
    if isinstance(error, LabTrackerError):
        info = error.to_dict()
    else:
        info = {
            "error_type": type(error).__name__,
            "code": "UNKNOWN",
            "message": str(error),
            "details": {"traceback": traceback.format_exc()},
            "recoverable": True,
        }
    if user_message:
        info["message"] = user_message

    code, message = info["code"], info["message"]
    details, recoverable = info["details"], info["recoverable"]

    if log_error:
        if recoverable:
            logger.warning(f"[{code}] {message}", extra={"details": details})
        else:
            logger.error(f"[{code}] {message}", extra={"details": details}, exc_info=True)

    return info

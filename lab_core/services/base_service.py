# =============================================================================
# lab_core/services/base_service.py
# Result type and error funnel shared by the workflow services
# =============================================================================

from __future__ import annotations
from abc import ABC
from typing import Any, Awaitable, Callable, Dict, Optional
from dataclasses import dataclass

from lab_core.logging import get_logger, LogContext
from lab_core.errors import handle_error, LabTrackerError


@dataclass
class ServiceResult:
    """
    Outcome of a borrow workflow call.

    Truthy on success. On failure ``error_code`` carries the LabTrackerError
    code and ``metadata`` its details, so a page can branch on the code
    without catching anything.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Dict[str, Any] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Dict[str, Any] = None
    ) -> ServiceResult:
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            metadata=metadata,
        )

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        """Domain errors keep their code; anything else is EXCEPTION."""
        if isinstance(e, LabTrackerError):
            return cls(
                success=False,
                error=e.message,
                error_code=e.code,
                metadata=e.details,
            )
        return cls(
            success=False,
            error=str(e),
            error_code="EXCEPTION",
        )


class BaseService(ABC):
    """
    Parent of the workflow services; logs under ``lab_core.<ClassName>``.

    Subclasses route each public call through safe_execute so callers only
    ever see a ServiceResult.
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)

    async def safe_execute(
        self,
        operation: str,
        func: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> ServiceResult:
        """
        Await ``func`` inside a timed log block and wrap the outcome.

        Domain errors go through handle_error; anything else is logged with a
        traceback. Both come back as failed results.
        """
        with self.log_operation(operation):
            try:
                result = await func(*args, **kwargs)
                return ServiceResult.ok(result)
            except LabTrackerError as e:
                handle_error(e)
                return ServiceResult.from_exception(e)
            except Exception as e:
                self.logger.error(f"{operation} failed: {e}", exc_info=True)
                return ServiceResult.fail(str(e))

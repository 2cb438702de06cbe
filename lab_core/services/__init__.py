# =============================================================================
# lab_core/services/__init__.py
# Service Layer - workflow rules on top of the data layer
# =============================================================================
"""
Usage Example:
-------------
    from lab_core.bootstrap import build_data_service
    from lab_core.services import BorrowService

    service = await build_data_service()
    borrow = BorrowService(service)
    result = await borrow.approve_request("req-1", "Administrator")
    if not result:
        print(result.error_code, result.error)
"""

from .base_service import BaseService, ServiceResult
from .borrow_service import BorrowService

__all__ = [
    "BaseService",
    "ServiceResult",
    "BorrowService",
]

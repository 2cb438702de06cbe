# =============================================================================
# lab_core/models/__init__.py
# Entity Model
# =============================================================================

from .entities import (
    User,
    Component,
    BorrowRequest,
    Notification,
    SystemData,
    Role,
    RequestStatus,
    NotificationType,
    utc_now_iso,
    new_id,
    scope_id_for,
)
from .defaults import (
    DEFAULT_ADMIN_EMAIL,
    STARTER_CATALOG,
    default_system_data,
    starter_components,
)

__all__ = [
    "User",
    "Component",
    "BorrowRequest",
    "Notification",
    "SystemData",
    "Role",
    "RequestStatus",
    "NotificationType",
    "utc_now_iso",
    "new_id",
    "scope_id_for",
    "DEFAULT_ADMIN_EMAIL",
    "STARTER_CATALOG",
    "default_system_data",
    "starter_components",
]

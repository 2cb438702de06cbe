# =============================================================================
# lab_core/models/entities.py
# Entity Records for the Lab Borrowing Tracker
# =============================================================================
"""
Plain records shared by every layer: users, components, borrow requests,
notifications and the SystemData aggregate that bundles them.

Records carry no behaviour beyond conversion to and from plain dicts. The
same dict shape is used for Supabase rows and for the local JSON snapshot.
"""

from __future__ import annotations
import copy
import json
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from lab_core.errors import ParseFailure


# Characters reserved by the store's path syntax
_RESERVED_PATH_CHARS = re.compile(r"[.#$\[\]]")


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


def new_id(prefix: str) -> str:
    """Time-based identifier, e.g. ``user-1718000000000-3fa2c1``."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def scope_id_for(email: str) -> str:
    """Map an email to a storage-safe scope identifier."""
    return _RESERVED_PATH_CHARS.sub("_", email)


class Role(Enum):
    """User roles."""
    STUDENT = "student"
    ADMIN = "admin"


class RequestStatus(Enum):
    """Borrow request lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"

    def can_transition(self, target: RequestStatus) -> bool:
        """Check whether ``self -> target`` is a legal workflow step."""
        return target in _TRANSITIONS.get(self, ())


_TRANSITIONS = {
    RequestStatus.PENDING: (RequestStatus.APPROVED, RequestStatus.REJECTED),
    RequestStatus.APPROVED: (RequestStatus.RETURNED,),
}


class NotificationType(Enum):
    """Notification severities."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class User:
    """Identity record; email is the unique key."""
    id: str
    name: str
    email: str
    role: Role = Role.STUDENT
    registered_at: str = field(default_factory=utc_now_iso)
    roll_no: Optional[str] = None
    mobile: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "registered_at": self.registered_at,
            "roll_no": self.roll_no,
            "mobile": self.mobile,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> User:
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            role=Role(data.get("role", Role.STUDENT.value)),
            registered_at=data.get("registered_at") or utc_now_iso(),
            roll_no=data.get("roll_no"),
            mobile=data.get("mobile"),
        )


@dataclass
class Component:
    """A borrowable item type with fixed capacity and mutable stock."""
    id: str
    name: str
    category: str
    total_quantity: int
    available_quantity: int
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "total_quantity": self.total_quantity,
            "available_quantity": self.available_quantity,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Component:
        return cls(
            id=data["id"],
            name=data["name"],
            category=data.get("category", ""),
            total_quantity=int(data["total_quantity"]),
            available_quantity=int(data["available_quantity"]),
            description=data.get("description"),
        )


@dataclass
class BorrowRequest:
    """
    Workflow aggregate. Requester and component fields are denormalized so
    the audit trail survives later profile or catalog edits.
    """
    id: str
    student_id: str
    student_name: str
    roll_no: str
    mobile: str
    component_id: str
    component_name: str
    quantity: int
    request_date: str
    due_date: str
    status: RequestStatus = RequestStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    returned_at: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "roll_no": self.roll_no,
            "mobile": self.mobile,
            "component_id": self.component_id,
            "component_name": self.component_name,
            "quantity": self.quantity,
            "request_date": self.request_date,
            "due_date": self.due_date,
            "status": self.status.value,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at,
            "returned_at": self.returned_at,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BorrowRequest:
        return cls(
            id=data["id"],
            student_id=data["student_id"],
            student_name=data.get("student_name", ""),
            roll_no=data.get("roll_no") or "",
            mobile=data.get("mobile") or "",
            component_id=data["component_id"],
            component_name=data.get("component_name", ""),
            quantity=int(data["quantity"]),
            request_date=data["request_date"],
            due_date=data["due_date"],
            status=RequestStatus(data.get("status", RequestStatus.PENDING.value)),
            approved_by=data.get("approved_by"),
            approved_at=data.get("approved_at"),
            returned_at=data.get("returned_at"),
            notes=data.get("notes"),
        )


@dataclass
class Notification:
    """Per-user message; only ``read`` ever changes after creation."""
    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    read: bool = False
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "read": self.read,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Notification:
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data.get("title", ""),
            message=data.get("message", ""),
            type=NotificationType(data.get("type", NotificationType.INFO.value)),
            read=bool(data.get("read", False)),
            created_at=data.get("created_at") or utc_now_iso(),
        )


# =============================================================================
# AGGREGATE
# =============================================================================

@dataclass
class SystemData:
    """One complete snapshot of all four collections."""
    users: List[User] = field(default_factory=list)
    components: List[Component] = field(default_factory=list)
    requests: List[BorrowRequest] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)

    def copy(self) -> SystemData:
        return copy.deepcopy(self)

    def find_user(self, email: str) -> Optional[User]:
        return next((u for u in self.users if u.email == email), None)

    def find_component(self, component_id: str) -> Optional[Component]:
        return next((c for c in self.components if c.id == component_id), None)

    def find_request(self, request_id: str) -> Optional[BorrowRequest]:
        return next((r for r in self.requests if r.id == request_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [u.to_dict() for u in self.users],
            "components": [c.to_dict() for c in self.components],
            "requests": [r.to_dict() for r in self.requests],
            "notifications": [n.to_dict() for n in self.notifications],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SystemData:
        return cls(
            users=[User.from_dict(u) for u in data.get("users") or []],
            components=[Component.from_dict(c) for c in data.get("components") or []],
            requests=[BorrowRequest.from_dict(r) for r in data.get("requests") or []],
            notifications=[Notification.from_dict(n) for n in data.get("notifications") or []],
        )

    def to_json(self) -> str:
        """Key-ordered JSON text."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> SystemData:
        """
        Decode a snapshot produced by ``to_json``.

        Raises:
            ParseFailure: If the text is not valid JSON or misses required fields
        """
        try:
            payload = json.loads(text)
            if not isinstance(payload, dict):
                raise TypeError(f"expected an object, got {type(payload).__name__}")
            return cls.from_dict(payload)
        except (ValueError, TypeError, KeyError) as e:
            raise ParseFailure(f"Snapshot could not be decoded: {e}") from e

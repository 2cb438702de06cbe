# =============================================================================
# lab_core/offline/backends.py
# Storage backends behind the data service
# =============================================================================
"""
StorageBackend - one interface, two variants chosen once at startup.

    RemoteBackend  Supabase is authoritative; reads come back through the
                   change feed and are mirrored into the local cache.
    LocalBackend   The SQLite snapshot is the only source of truth.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Union
import logging

from lab_core.auth.policy import PasswordPolicy, synthesize_student
from lab_core.data.export import render_requests_csv
from lab_core.data.remote_store import RemoteStoreAdapter, RemoteSubscription
from lab_core.errors import NotFound, RemoteUnavailable
from lab_core.models import BorrowRequest, Component, Notification, SystemData, User
from lab_core.offline.local_database import LocalCache

logger = logging.getLogger(__name__)

Record = Union[Component, BorrowRequest, Notification]
SnapshotCallback = Callable[[SystemData], None]
ErrorCallback = Callable[[RemoteUnavailable], None]


class Collection(Enum):
    """Mutable collections of the aggregate."""
    COMPONENTS = "components"
    REQUESTS = "requests"
    NOTIFICATIONS = "notifications"

    @property
    def updatable(self) -> bool:
        """Notifications only change through mark_notification_read."""
        return self is not Collection.NOTIFICATIONS


def _require_updatable(collection: Collection) -> None:
    if not collection.updatable:
        raise ValueError(f"{collection.value} cannot be updated in place")


class NullSubscription:
    """Subscription with nothing to release."""

    active = False

    async def unsubscribe(self) -> None:
        return None


class StorageBackend(ABC):
    """Capability interface shared by the cloud and local variants."""

    mode: str = ""
    mirrors_to_cache: bool = False

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> Optional[User]:
        ...

    async def resume(self, user: User) -> None:
        """Restore scope for a user whose session was persisted."""

    @property
    def scope(self) -> Optional[str]:
        return None

    @abstractmethod
    async def subscribe(self, callback: SnapshotCallback, on_error: Optional[ErrorCallback] = None):
        ...

    @abstractmethod
    async def add(self, collection: Collection, record: Record) -> None:
        ...

    @abstractmethod
    async def update(self, collection: Collection, record: Record) -> None:
        ...

    @abstractmethod
    async def mark_notification_read(self, notification_id: str) -> None:
        ...

    @abstractmethod
    async def fetch_requests(self, student_id: Optional[str] = None) -> List[BorrowRequest]:
        ...

    @abstractmethod
    async def fetch_notifications(self, user_id: Optional[str] = None) -> List[Notification]:
        ...

    @abstractmethod
    async def export_csv(self) -> str:
        ...

    async def close(self) -> None:
        """Release subscriptions and connections."""


# =============================================================================
# CLOUD
# =============================================================================

class RemoteBackend(StorageBackend):
    """Forwards every operation to the scoped Supabase adapter."""

    mode = "cloud"
    mirrors_to_cache = True

    def __init__(self, adapter: RemoteStoreAdapter):
        self.adapter = adapter
        self._writers = {
            (Collection.COMPONENTS, "add"): adapter.add_component,
            (Collection.COMPONENTS, "update"): adapter.update_component,
            (Collection.REQUESTS, "add"): adapter.add_request,
            (Collection.REQUESTS, "update"): adapter.update_request,
            (Collection.NOTIFICATIONS, "add"): adapter.add_notification,
        }

    @property
    def scope(self) -> Optional[str]:
        return self.adapter.scope_id

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        return await self.adapter.authenticate(email, password)

    async def resume(self, user: User) -> None:
        self.adapter.set_scope(user.email)

    async def subscribe(
        self,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> RemoteSubscription:
        return await self.adapter.subscribe_to_user_document(callback, on_error)

    async def add(self, collection: Collection, record: Record) -> None:
        await self._writers[(collection, "add")](record)

    async def update(self, collection: Collection, record: Record) -> None:
        _require_updatable(collection)
        await self._writers[(collection, "update")](record)

    async def mark_notification_read(self, notification_id: str) -> None:
        await self.adapter.mark_notification_read(notification_id)

    async def fetch_requests(self, student_id: Optional[str] = None) -> List[BorrowRequest]:
        return await self.adapter.fetch_requests(student_id)

    async def fetch_notifications(self, user_id: Optional[str] = None) -> List[Notification]:
        return await self.adapter.fetch_notifications(user_id)

    async def export_csv(self) -> str:
        return await self.adapter.export_csv()

    async def close(self) -> None:
        await self.adapter.unsubscribe_all()


# =============================================================================
# LOCAL
# =============================================================================

class LocalBackend(StorageBackend):
    """
    Reads the cached snapshot, mutates it by id and writes it back on every
    call. Adding an existing id replaces that record, matching the remote
upsert; updates of unknown ids are ignored.
    """

    mode = "local"
    mirrors_to_cache = False

    def __init__(self, cache: LocalCache, policy: Optional[PasswordPolicy] = None):
        self.cache = cache
        self.policy = policy or PasswordPolicy()

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        if not self.policy.check(email, password):
            return None

        data = self.cache.read()
        user = data.find_user(email)
        if user is None and self.policy.may_provision(email):
            user = synthesize_student(email)
            data.users.append(user)
            self.cache.write(data)
            logger.info(f"Provisioned student {user.email} ({user.name})")

        return user

    async def subscribe(
        self,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> NullSubscription:
        callback(self.cache.read())
        return NullSubscription()

    async def add(self, collection: Collection, record: Record) -> None:
        data = self.cache.read()
        items = getattr(data, collection.value)
        for index, existing in enumerate(items):
            if existing.id == record.id:
                items[index] = record
                break
        else:
            items.append(record)
        self.cache.write(data)

    async def update(self, collection: Collection, record: Record) -> None:
        _require_updatable(collection)
        data = self.cache.read()
        items = getattr(data, collection.value)
        for index, existing in enumerate(items):
            if existing.id == record.id:
                items[index] = record
                self.cache.write(data)
                return

        missing = NotFound("Update ignored", collection=collection.value, record_id=record.id)
        logger.debug(str(missing))

    async def mark_notification_read(self, notification_id: str) -> None:
        data = self.cache.read()
        for notification in data.notifications:
            if notification.id == notification_id:
                notification.read = True
                self.cache.write(data)
                return

    async def fetch_requests(self, student_id: Optional[str] = None) -> List[BorrowRequest]:
        requests = self.cache.read().requests
        if student_id is None:
            return requests
        return [r for r in requests if r.student_id == student_id]

    async def fetch_notifications(self, user_id: Optional[str] = None) -> List[Notification]:
        notifications = self.cache.read().notifications
        if user_id is None:
            return notifications
        return [n for n in notifications if n.user_id == user_id]

    async def export_csv(self) -> str:
        return render_requests_csv(self.cache.read().requests)

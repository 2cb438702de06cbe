# =============================================================================
# lab_core/offline/unified_data_service.py
# LabDataService - single API for cloud and local operation
# =============================================================================
"""
LabDataService - the only data interface the presentation layer uses.

The storage backend (cloud or local) is chosen once, at construction. The
service keeps the last known snapshot in memory and:

- Cloud: remote is authoritative. Writes go straight to Supabase; the change
  feed brings the result back, each tick replaces the snapshot wholesale and
  is written through to the local cache.
- Local: every write mutates the cached snapshot and persists it.

Reads of the snapshot never hit the network. When the remote store fails,
reads degrade to the last known snapshot instead of raising.

Usage:
------
service = LabDataService(backend, cache)
user = await service.authenticate(email, password)
subscription = await service.subscribe(on_data)
components = service.get_components()
...
await subscription.unsubscribe()
await service.cleanup()
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional
import copy
import logging

from lab_core.data.export import render_requests_csv
from lab_core.errors import RemoteUnavailable, handle_error
from lab_core.models import BorrowRequest, Component, Notification, SystemData, User
from lab_core.offline.backends import Collection, NullSubscription, StorageBackend
from lab_core.offline.local_database import LocalCache

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[SystemData], None]


def reduce_snapshot(last: Optional[SystemData], incoming: SystemData) -> SystemData:
    """
    Conflict policy for the read model: the incoming snapshot replaces the
    last one wholesale. No field-level merge.
    """
    return incoming


class LabDataService:
    """
    Facade over one StorageBackend and the local snapshot cache.
    """

    def __init__(self, backend: StorageBackend, cache: LocalCache):
        """
        Args:
            backend: RemoteBackend or LocalBackend, fixed for the service's life
            cache: Local snapshot cache (backup in cloud mode, source of truth
                in local mode)
        """
        self.backend = backend
        self.cache = cache
        self._snapshot: Optional[SystemData] = None

        if not self.is_cloud or cache.exists():
            self._snapshot = cache.read()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def mode(self) -> str:
        return self.backend.mode

    @property
    def is_cloud(self) -> bool:
        return self.backend.mirrors_to_cache

    @property
    def snapshot(self) -> Optional[SystemData]:
        """Last known snapshot (None in cloud mode before the first tick)."""
        return self._snapshot

    def last_known_snapshot(self) -> SystemData:
        """In-memory snapshot, else the cached one, else the Default Dataset."""
        if self._snapshot is not None:
            return self._snapshot
        return self.cache.read()

    def _reload_local(self) -> None:
        if not self.is_cloud:
            self._snapshot = self.cache.read()

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    async def subscribe(self, callback: SnapshotCallback):
        """
        Deliver snapshots to ``callback`` until the returned subscription is
        unsubscribed.

        Cloud mode writes every tick through to the cache before invoking the
        callback. When the remote feed cannot be opened or a refresh fails,
        the last known snapshot is delivered instead.

        Returns:
            Object with an async ``unsubscribe()``
        """
        def on_snapshot(incoming: SystemData) -> None:
            self._snapshot = reduce_snapshot(self._snapshot, incoming)
            if self.is_cloud:
                self.cache.write(self._snapshot)
            callback(self._snapshot)

        def on_error(error: RemoteUnavailable) -> None:
            handle_error(error, user_message="Live update failed; serving cached data")
            callback(self.last_known_snapshot())

        try:
            return await self.backend.subscribe(on_snapshot, on_error)
        except RemoteUnavailable as e:
            handle_error(e, user_message="Subscription failed; serving cached data")
            callback(self.last_known_snapshot())
            return NullSubscription()

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Validate credentials and resolve the User.

        In cloud mode the identity is also merged into the cached snapshot's
        users so it survives a later offline start.

        Returns:
            The User, or None when the credentials are rejected or the
            remote store cannot be reached
        """
        try:
            user = await self.backend.authenticate(email, password)
        except RemoteUnavailable as e:
            handle_error(e, user_message=f"Sign-in for {email} failed; store unreachable")
            return None

        if user is None:
            return None

        if self.is_cloud:
            self._merge_user(user)
        else:
            self._reload_local()
        return user

    def _merge_user(self, user: User) -> None:
        data = self.last_known_snapshot()
        if data.find_user(user.email) is None:
            data.users.append(user)
            self.cache.write(data)
        self._snapshot = data

    async def resume(self, user: User) -> None:
        """Re-scope the backend for a persisted session."""
        await self.backend.resume(user)

    # =========================================================================
    # SNAPSHOT READS
    # =========================================================================

    # Reads hand out copies; the snapshot changes only through the backend.

    def get_users(self) -> List[User]:
        return copy.deepcopy(self._snapshot.users) if self._snapshot else []

    def get_components(self) -> List[Component]:
        return copy.deepcopy(self._snapshot.components) if self._snapshot else []

    def get_requests(self) -> List[BorrowRequest]:
        return copy.deepcopy(self._snapshot.requests) if self._snapshot else []

    def get_component(self, component_id: str) -> Optional[Component]:
        if self._snapshot is None:
            return None
        return copy.deepcopy(self._snapshot.find_component(component_id))

    def get_request(self, request_id: str) -> Optional[BorrowRequest]:
        if self._snapshot is None:
            return None
        return copy.deepcopy(self._snapshot.find_request(request_id))

    # =========================================================================
    # WRITES
    # =========================================================================

    async def _write(self, collection: Collection, record, replace: bool) -> None:
        try:
            if replace:
                await self.backend.update(collection, record)
            else:
                await self.backend.add(collection, record)
        except RemoteUnavailable as e:
            logger.error(f"Write to {collection.value} failed: {e}")
            raise
        self._reload_local()

    async def add_component(self, component: Component) -> None:
        await self._write(Collection.COMPONENTS, component, replace=False)

    async def update_component(self, component: Component) -> None:
        await self._write(Collection.COMPONENTS, component, replace=True)

    async def add_request(self, request: BorrowRequest) -> None:
        await self._write(Collection.REQUESTS, request, replace=False)

    async def update_request(self, request: BorrowRequest) -> None:
        await self._write(Collection.REQUESTS, request, replace=True)

    async def add_notification(self, notification: Notification) -> None:
        await self._write(Collection.NOTIFICATIONS, notification, replace=False)

    async def mark_notification_read(self, notification_id: str) -> None:
        try:
            await self.backend.mark_notification_read(notification_id)
        except RemoteUnavailable as e:
            logger.error(f"Marking notification {notification_id} read failed: {e}")
            raise
        self._reload_local()

    # =========================================================================
    # QUERIES WITH FALLBACK
    # =========================================================================

    async def get_user_requests(self, user_id: str) -> List[BorrowRequest]:
        try:
            return await self.backend.fetch_requests(user_id)
        except RemoteUnavailable as e:
            logger.warning(f"Falling back to cached requests for {user_id}: {e}")
            return [r for r in self.get_requests() if r.student_id == user_id]

    async def get_user_notifications(self, user_id: str) -> List[Notification]:
        try:
            return await self.backend.fetch_notifications(user_id)
        except RemoteUnavailable as e:
            logger.warning(f"Falling back to cached notifications for {user_id}: {e}")
            notifications = self._snapshot.notifications if self._snapshot else []
            return [n for n in notifications if n.user_id == user_id]

    async def export_csv(self) -> str:
        try:
            return await self.backend.export_csv()
        except RemoteUnavailable as e:
            logger.warning(f"Exporting cached requests: {e}")
            return render_requests_csv(self.get_requests())

    # =========================================================================
    # STATUS & CLEANUP
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Status information for UI display."""
        data = self._snapshot
        return {
            "mode": self.mode,
            "scope": self.backend.scope,
            "has_snapshot": data is not None,
            "users": len(data.users) if data else 0,
            "components": len(data.components) if data else 0,
            "requests": len(data.requests) if data else 0,
            "notifications": len(data.notifications) if data else 0,
        }

    async def cleanup(self) -> None:
        """Release every live subscription (no-op in local mode)."""
        await self.backend.close()

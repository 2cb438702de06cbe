# =============================================================================
# lab_core/data/remote_store.py
# Supabase-backed store scoped to the signed-in email
# =============================================================================
"""
RemoteStoreAdapter - translates entity operations into Supabase calls.

Every row lives under a scope: the signed-in email with the characters
reserved by the store's path syntax (. # $ [ ]) replaced by underscores.

Tables (see scripts/setup_lab_tables.py):
    lab_scopes          one row per scope: email + users list (the "user document")
    lab_components      (scope_id, id) -> component columns
    lab_requests        (scope_id, id) -> borrow request columns
    lab_notifications   (scope_id, id) -> notification columns

Any store or network failure is raised as RemoteUnavailable.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from lab_core.auth.policy import PasswordPolicy, synthesize_student
from lab_core.data.export import render_requests_csv
from lab_core.errors import RemoteUnavailable
from lab_core.models import (
    BorrowRequest,
    Component,
    Notification,
    SystemData,
    User,
    default_system_data,
    scope_id_for,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[SystemData], None]
ErrorCallback = Callable[[RemoteUnavailable], None]


class RemoteSubscription:
    """
    Live change feed on one scope.

    ``unsubscribe()`` guarantees the callback never fires again, cancels any
    in-flight refresh and removes the Realtime channel.
    """

    def __init__(
        self,
        adapter: Optional[RemoteStoreAdapter],
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        active: bool = True,
    ):
        self._adapter = adapter
        self._callback = callback
        self._on_error = on_error
        self._active = active
        self._channel = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> bool:
        return self._active

    def attach_channel(self, channel) -> None:
        self._channel = channel

    def deliver(self, data: SystemData) -> None:
        if self._active:
            self._callback(data)

    def on_change(self, payload: Any = None) -> None:
        """Realtime callback: schedule a re-fetch of the whole aggregate."""
        if not self._active:
            return
        task = asyncio.get_running_loop().create_task(self._refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self) -> None:
        try:
            data = await self._adapter.fetch_system_data()
        except RemoteUnavailable as e:
            logger.warning(f"Refresh after change failed: {e}")
            if self._active and self._on_error is not None:
                self._on_error(e)
            return
        self.deliver(data)

    async def unsubscribe(self) -> None:
        self._active = False

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        if self._channel is not None:
            channel, self._channel = self._channel, None
            try:
                await self._adapter.client.remove_channel(channel)
            except Exception as e:
                logger.warning(f"Error removing realtime channel: {e}")

        if self._adapter is not None:
            self._adapter.forget(self)


class RemoteStoreAdapter:
    """
    Scoped CRUD, queries and change feed over Supabase.

    Usage:
        adapter = RemoteStoreAdapter(client)
        user = await adapter.authenticate(email, password)
        sub = await adapter.subscribe_to_user_document(on_snapshot)
        ...
        await sub.unsubscribe()
    """

    SCOPES_TABLE = "lab_scopes"
    COMPONENTS_TABLE = "lab_components"
    REQUESTS_TABLE = "lab_requests"
    NOTIFICATIONS_TABLE = "lab_notifications"
    SEED_FUNCTION = "seed_lab_scope"

    def __init__(self, client, policy: Optional[PasswordPolicy] = None):
        """
        Args:
            client: supabase AsyncClient
            policy: Password policy (defaults to the organization's fixed policy)
        """
        self.client = client
        self.policy = policy or PasswordPolicy()
        self._email: Optional[str] = None
        self._subscriptions: List[RemoteSubscription] = []

    # =========================================================================
    # SCOPE
    # =========================================================================

    def set_scope(self, email: str) -> None:
        self._email = email

    @property
    def email(self) -> Optional[str]:
        return self._email

    @property
    def scope_id(self) -> Optional[str]:
        return scope_id_for(self._email) if self._email else None

    async def _execute(self, operation: str, table: str, query):
        try:
            return await query.execute()
        except Exception as e:
            raise RemoteUnavailable(
                f"{operation} on {table} failed: {e}",
                operation=operation,
                table=table,
            ) from e

    def _row(self, record) -> Dict[str, Any]:
        row = record.to_dict()
        row["scope_id"] = self.scope_id
        row["updated_at"] = utc_now_iso()
        return row

    async def _upsert(self, operation: str, table: str, record) -> None:
        if not self.scope_id:
            return
        query = self.client.table(table).upsert(self._row(record), on_conflict="scope_id,id")
        await self._execute(operation, table, query)

    # =========================================================================
    # SCOPE ROW ("user document")
    # =========================================================================

    async def fetch_scope_row(self) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table(self.SCOPES_TABLE)
            .select("*")
            .eq("id", self.scope_id)
            .limit(1)
        )
        response = await self._execute("fetch_scope", self.SCOPES_TABLE, query)
        return response.data[0] if response.data else None

    async def initialize_scope(self, data: SystemData) -> None:
        """Write the scope row and the catalog in one transaction."""
        params = {
            "p_scope_id": self.scope_id,
            "p_email": self._email,
            "p_users": [u.to_dict() for u in data.users],
            "p_components": [c.to_dict() for c in data.components],
        }
        await self._execute(
            "seed_scope",
            self.SCOPES_TABLE,
            self.client.rpc(self.SEED_FUNCTION, params),
        )
        logger.info(f"Seeded scope {self.scope_id} with default dataset")

    async def ensure_scope(self) -> Tuple[Optional[Dict[str, Any]], Optional[SystemData]]:
        """
        Fetch the scope row, seeding the Default Dataset if it is missing.

        Returns:
            (row, seed) where ``seed`` is the seeded SystemData on first use,
            otherwise None
        """
        row = await self.fetch_scope_row()
        if row is not None:
            return row, None

        seed = default_system_data(self.policy.admin_email)
        await self.initialize_scope(seed)
        row = {"id": self.scope_id, "email": self._email, "users": [u.to_dict() for u in seed.users]}
        return row, seed

    async def get_user(self, email: str) -> Optional[User]:
        if not self.scope_id:
            return None
        row = await self.fetch_scope_row()
        if row is None:
            return None
        for data in row.get("users") or []:
            if data.get("email") == email:
                return User.from_dict(data)
        return None

    async def add_user(self, user: User) -> None:
        if not self.scope_id:
            return
        row = await self.fetch_scope_row()
        if row is None:
            logger.debug(f"Scope {self.scope_id} missing; user {user.email} not persisted")
            return

        users = list(row.get("users") or [])
        users.append(user.to_dict())
        query = (
            self.client.table(self.SCOPES_TABLE)
            .update({"users": users, "updated_at": utc_now_iso()})
            .eq("id", self.scope_id)
        )
        await self._execute("add_user", self.SCOPES_TABLE, query)

    # =========================================================================
    # COMPONENTS
    # =========================================================================

    async def fetch_components(self) -> List[Component]:
        if not self.scope_id:
            return []
        query = self.client.table(self.COMPONENTS_TABLE).select("*").eq("scope_id", self.scope_id)
        response = await self._execute("fetch_components", self.COMPONENTS_TABLE, query)
        return [Component.from_dict(row) for row in response.data or []]

    async def add_component(self, component: Component) -> None:
        await self._upsert("add_component", self.COMPONENTS_TABLE, component)

    async def update_component(self, component: Component) -> None:
        await self._upsert("update_component", self.COMPONENTS_TABLE, component)

    # =========================================================================
    # REQUESTS
    # =========================================================================

    async def fetch_requests(self, student_id: Optional[str] = None) -> List[BorrowRequest]:
        """Requests in the scope, newest request_date first."""
        if not self.scope_id:
            return []
        query = self.client.table(self.REQUESTS_TABLE).select("*").eq("scope_id", self.scope_id)
        if student_id is not None:
            query = query.eq("student_id", student_id)
        query = query.order("request_date", desc=True)
        response = await self._execute("fetch_requests", self.REQUESTS_TABLE, query)
        return [BorrowRequest.from_dict(row) for row in response.data or []]

    async def fetch_requests_for_user(self, student_id: str) -> List[BorrowRequest]:
        return await self.fetch_requests(student_id=student_id)

    async def add_request(self, request: BorrowRequest) -> None:
        await self._upsert("add_request", self.REQUESTS_TABLE, request)

    async def update_request(self, request: BorrowRequest) -> None:
        await self._upsert("update_request", self.REQUESTS_TABLE, request)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def fetch_notifications(self, user_id: Optional[str] = None) -> List[Notification]:
        """Notifications in the scope, newest first, optionally for one user."""
        if not self.scope_id:
            return []
        query = self.client.table(self.NOTIFICATIONS_TABLE).select("*").eq("scope_id", self.scope_id)
        if user_id is not None:
            query = query.eq("user_id", user_id)
        query = query.order("created_at", desc=True)
        response = await self._execute("fetch_notifications", self.NOTIFICATIONS_TABLE, query)
        return [Notification.from_dict(row) for row in response.data or []]

    async def add_notification(self, notification: Notification) -> None:
        await self._upsert("add_notification", self.NOTIFICATIONS_TABLE, notification)

    async def mark_notification_read(self, notification_id: str) -> None:
        if not self.scope_id:
            return
        query = (
            self.client.table(self.NOTIFICATIONS_TABLE)
            .update({"read": True, "updated_at": utc_now_iso()})
            .eq("scope_id", self.scope_id)
            .eq("id", notification_id)
        )
        await self._execute("mark_notification_read", self.NOTIFICATIONS_TABLE, query)

    # =========================================================================
    # AGGREGATE & CHANGE FEED
    # =========================================================================

    async def fetch_system_data(self, row: Optional[Dict[str, Any]] = None) -> SystemData:
        if row is None:
            row = await self.fetch_scope_row()
        components, requests, notifications = await asyncio.gather(
            self.fetch_components(),
            self.fetch_requests(),
            self.fetch_notifications(),
        )
        return SystemData(
            users=[User.from_dict(u) for u in (row or {}).get("users") or []],
            components=components,
            requests=requests,
            notifications=notifications,
        )

    async def subscribe_to_user_document(
        self,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> RemoteSubscription:
        """
        Deliver the current aggregate, then re-deliver it on every change.

        A scope seen for the first time is seeded with the Default Dataset
        and that seed is delivered as the first snapshot.

        Raises:
            RemoteUnavailable: The initial fetch/seed or the channel failed
        """
        if not self.scope_id:
            return RemoteSubscription(None, callback, active=False)

        subscription = RemoteSubscription(self, callback, on_error)

        row, seed = await self.ensure_scope()
        subscription.deliver(seed if seed is not None else await self.fetch_system_data(row))

        channel = self.client.channel(f"lab-scope-{self.scope_id}")
        watched = (
            (self.SCOPES_TABLE, "id"),
            (self.COMPONENTS_TABLE, "scope_id"),
            (self.REQUESTS_TABLE, "scope_id"),
            (self.NOTIFICATIONS_TABLE, "scope_id"),
        )
        for table, column in watched:
            channel.on_postgres_changes(
                "*",
                schema="public",
                table=table,
                filter=f"{column}=eq.{self.scope_id}",
                callback=subscription.on_change,
            )

        try:
            await channel.subscribe()
        except Exception as e:
            try:
                await self.client.remove_channel(channel)
            except Exception as cleanup_error:
                logger.warning(f"Error removing failed realtime channel: {cleanup_error}")
            raise RemoteUnavailable(
                f"Realtime subscription failed: {e}",
                operation="subscribe",
                table=self.SCOPES_TABLE,
            ) from e

        subscription.attach_channel(channel)
        self._subscriptions.append(subscription)
        logger.info(f"Subscribed to scope {self.scope_id}")
        return subscription

    def forget(self, subscription: RemoteSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def unsubscribe_all(self) -> None:
        for subscription in list(self._subscriptions):
            await subscription.unsubscribe()
        self._subscriptions = []

    # =========================================================================
    # AUTHENTICATION & EXPORT
    # =========================================================================

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Check the password policy, scope to ``email`` and resolve its User.

        Unknown organizational addresses get a new student record.
        """
        if not self.policy.check(email, password):
            return None

        self.set_scope(email)
        await self.ensure_scope()

        user = await self.get_user(email)
        if user is None and self.policy.may_provision(email):
            user = synthesize_student(email)
            await self.add_user(user)
            logger.info(f"Provisioned student {user.email} ({user.name})")

        return user

    async def export_csv(self) -> str:
        return render_requests_csv(await self.fetch_requests())

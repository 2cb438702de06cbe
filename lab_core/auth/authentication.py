# =============================================================================
# lab_core/auth/authentication.py
# Login / logout flow and the Session that owns the live subscription
# =============================================================================
"""
Authentication gate for the lab borrowing tracker.

Login: validate the password, scope the data service to the email, resolve
or provision the User, open the data subscription and persist the identity
so a reload can resume. Logout reverses all of it.

The returned Session owns its subscription; nothing is kept in module
globals.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Callable, Optional

from lab_core.logging import get_logger
from lab_core.models import SystemData, User

if TYPE_CHECKING:
    from lab_core.offline.local_database import SessionStore
    from lab_core.offline.unified_data_service import LabDataService

logger = get_logger(__name__)

DataCallback = Callable[[SystemData], None]


class Session:
    """
    A signed-in user plus the cancellation handle of their data feed.

    ``data`` always holds the latest snapshot delivered to the session.
    """

    def __init__(self, user: User, on_data: Optional[DataCallback] = None):
        self.user: Optional[User] = user
        self.data: Optional[SystemData] = None
        self.subscription = None
        self._on_data = on_data

    @property
    def is_active(self) -> bool:
        return self.user is not None

    def receive(self, data: SystemData) -> None:
        """Subscription callback: keep the snapshot and forward it."""
        if self.user is None:
            return
        self.data = data
        if self._on_data is not None:
            self._on_data(data)

    async def close(self) -> None:
        """Release the subscription and drop user/data state."""
        if self.subscription is not None:
            subscription, self.subscription = self.subscription, None
            await subscription.unsubscribe()
        self.user = None
        self.data = None


class AuthGate:
    """
    Usage:
        gate = AuthGate(service, session_store)
        session = await gate.restore(on_data) or await gate.login(email, pw, on_data)
        ...
        await gate.logout(session)
    """

    def __init__(self, service: LabDataService, session_store: SessionStore):
        self.service = service
        self.session_store = session_store

    async def _open(self, user: User, on_data: Optional[DataCallback]) -> Session:
        session = Session(user, on_data)
        session.subscription = await self.service.subscribe(session.receive)
        return session

    async def login(
        self,
        email: str,
        password: str,
        on_data: Optional[DataCallback] = None,
    ) -> Optional[Session]:
        """
        Returns:
            An open Session, or None when the credentials are rejected
        """
        user = await self.service.authenticate(email, password)
        if user is None:
            return None

        session = await self._open(user, on_data)
        self.session_store.save(user)
        logger.info(f"Signed in {user.email} as {user.role.value}")
        return session

    async def restore(self, on_data: Optional[DataCallback] = None) -> Optional[Session]:
        """Resume the persisted session, if any, and re-subscribe."""
        user = self.session_store.load()
        if user is None:
            return None

        await self.service.resume(user)
        logger.info(f"Resumed session for {user.email}")
        return await self._open(user, on_data)

    async def logout(self, session: Optional[Session]) -> None:
        """Tear down the feed, clear the persisted identity and state."""
        if session is not None:
            email = session.user.email if session.user else None
            await session.close()
            logger.info(f"Signed out {email}")
        self.session_store.clear()
        await self.service.cleanup()

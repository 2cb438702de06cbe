# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import asyncio
import copy
from types import SimpleNamespace
from typing import Any, Callable, Dict, List

import pytest
import pytest_asyncio

from lab_core.auth import PasswordPolicy
from lab_core.data import RemoteStoreAdapter
from lab_core.models import BorrowRequest, RequestStatus, User, Role
from lab_core.offline import (
    LabDataService,
    LocalBackend,
    LocalCache,
    LocalStore,
    RemoteBackend,
    SessionStore,
)


# =============================================================================
# IN-MEMORY SUPABASE
# =============================================================================

class FakeQuery:
    """Chainable query over one in-memory table (subset of postgrest)."""

    def __init__(self, db: "FakeAsyncSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.order_by = None
        self.limit_to = None

    def select(self, *columns):
        self.op = "select"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_to = n
        return self

    def upsert(self, row, on_conflict=None):
        self.op = "upsert"
        self.payload = row
        return self

    def update(self, values):
        self.op = "update"
        self.payload = values
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    async def execute(self):
        self.db.calls.append((self.op, self.table))
        if self.db.fail:
            raise ConnectionError("network down")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "upsert":
            key = (self.payload.get("scope_id"), self.payload.get("id"))
            for index, row in enumerate(rows):
                if (row.get("scope_id"), row.get("id")) == key:
                    rows[index] = dict(self.payload)
                    break
            else:
                rows.append(dict(self.payload))
            return SimpleNamespace(data=[dict(self.payload)])

        if self.op == "update":
            touched = [row for row in rows if self._matches(row)]
            for row in touched:
                row.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=[dict(row) for row in touched])

        result = [copy.deepcopy(row) for row in rows if self._matches(row)]
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self.limit_to is not None:
            result = result[: self.limit_to]
        return SimpleNamespace(data=result)


class FakeRpc:
    def __init__(self, db: "FakeAsyncSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    async def execute(self):
        self.db.calls.append(("rpc", self.name))
        if self.db.fail:
            raise ConnectionError("network down")

        p = self.params
        self.db.tables["lab_scopes"].append({
            "id": p["p_scope_id"],
            "email": p["p_email"],
            "users": copy.deepcopy(p["p_users"]),
        })
        for component in p["p_components"]:
            row = dict(component)
            row["scope_id"] = p["p_scope_id"]
            self.db.tables["lab_components"].append(row)
        return SimpleNamespace(data=None)


class FakeChannel:
    def __init__(self, db: "FakeAsyncSupabase", name: str):
        self.db = db
        self.name = name
        self.listeners: List[Dict[str, Any]] = []
        self.subscribed = False

    def on_postgres_changes(self, event, callback: Callable, table="*", schema="public", filter=None):
        self.listeners.append({"event": event, "table": table, "filter": filter, "callback": callback})
        return self

    async def subscribe(self, callback=None):
        if self.db.fail_realtime:
            raise ConnectionError("realtime down")
        self.subscribed = True
        return self

    def emit(self, table: str) -> None:
        """Fire every listener registered for ``table``."""
        for listener in self.listeners:
            if listener["table"] == table:
                listener["callback"]({"table": table, "eventType": "UPDATE"})


class FakeAsyncSupabase:
    """
    Minimal stand-in for supabase.AsyncClient.

    Set ``fail`` to make every query raise, ``fail_realtime`` to make
    channel subscription raise.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "lab_scopes": [],
            "lab_components": [],
            "lab_requests": [],
            "lab_notifications": [],
        }
        self.channels: List[FakeChannel] = []
        self.removed: List[FakeChannel] = []
        self.calls: List[tuple] = []
        self.fail = False
        self.fail_realtime = False

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def channel(self, name: str) -> FakeChannel:
        channel = FakeChannel(self, name)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.removed.append(channel)

    def emit(self, table: str) -> None:
        for channel in self.channels:
            if channel not in self.removed:
                channel.emit(table)


@pytest.fixture
def settle():
    """Awaitable that lets scheduled refresh tasks run to completion"""
    async def _settle(rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


# =============================================================================
# STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def local_store(tmp_path):
    """SQLite key/value store in a temp directory"""
    store = LocalStore(tmp_path / "lab_tracker.db").initialize()
    yield store
    store.close()


@pytest.fixture
def cache(local_store):
    return LocalCache(local_store)


@pytest.fixture
def session_store(local_store):
    return SessionStore(local_store)


@pytest.fixture
def policy():
    return PasswordPolicy()


@pytest.fixture
def fake_client():
    return FakeAsyncSupabase()


@pytest.fixture
def adapter(fake_client, policy):
    return RemoteStoreAdapter(fake_client, policy)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def local_service(cache, policy):
    """LabDataService on the local backend"""
    return LabDataService(LocalBackend(cache, policy), cache)


@pytest_asyncio.fixture
async def cloud_service(adapter, cache):
    """LabDataService on the fake Supabase backend"""
    service = LabDataService(RemoteBackend(adapter), cache)
    yield service
    await service.cleanup()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def student():
    return User(
        id="user-1",
        name="Jane Doe",
        email="jane.doe@issacasimov.in",
        role=Role.STUDENT,
        registered_at="2026-01-05T09:00:00.000Z",
        roll_no="21CS042",
        mobile="9876543210",
    )


@pytest.fixture
def make_request(student):
    """Factory for borrow requests owned by the sample student"""
    def _make(request_id="req-1", component_id="comp-1", quantity=2,
              status=RequestStatus.PENDING, request_date="2026-03-01T10:00:00.000Z", **extra):
        return BorrowRequest(
            id=request_id,
            student_id=student.id,
            student_name=student.name,
            roll_no=student.roll_no,
            mobile=student.mobile,
            component_id=component_id,
            component_name="Arduino Uno",
            quantity=quantity,
            request_date=request_date,
            due_date="2026-03-15",
            status=status,
            **extra,
        )
    return _make

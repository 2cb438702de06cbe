# =============================================================================
# tests/unit/test_data_service.py
# Unit Tests for LabDataService
# =============================================================================

import pytest

from lab_core.errors import RemoteUnavailable
from lab_core.models import (
    Component,
    Notification,
    RequestStatus,
    SystemData,
    default_system_data,
)
from lab_core.offline import LabDataService, LocalBackend, reduce_snapshot


ADMIN_EMAIL = "admin@issacasimov.in"
ADMIN_PASSWORD = "ralab"
STUDENT_PASSWORD = "issacasimov"


def test_reduce_snapshot_replaces_wholesale():
    last = default_system_data()
    incoming = SystemData()
    assert reduce_snapshot(last, incoming) is incoming


class TestLocalMode:
    """Local backend: the cached snapshot is the source of truth"""

    def test_starts_from_default_dataset(self, local_service):
        assert local_service.mode == "local"
        assert not local_service.is_cloud
        assert len(local_service.get_components()) == 8
        assert len(local_service.get_users()) == 1

    async def test_subscribe_delivers_once(self, local_service):
        received = []
        subscription = await local_service.subscribe(received.append)

        assert len(received) == 1
        assert len(received[0].components) == 8
        await subscription.unsubscribe()

    async def test_add_request_persists(self, local_service, cache, make_request):
        await local_service.add_request(make_request())

        assert [r.id for r in cache.read().requests] == ["req-1"]
        assert local_service.get_request("req-1") is not None

    async def test_update_replaces_by_id(self, local_service, cache, make_request):
        request = make_request()
        await local_service.add_request(request)
        request.status = RequestStatus.APPROVED
        await local_service.update_request(request)

        assert cache.read().find_request("req-1").status == RequestStatus.APPROVED

    async def test_update_unknown_id_is_noop(self, local_service, cache):
        before = cache.read()
        ghost = Component(id="comp-404", name="Ghost", category="None",
                          total_quantity=1, available_quantity=1)

        await local_service.update_component(ghost)

        assert cache.read() == before

    async def test_authenticate_provisions_student(self, local_service, cache):
        user = await local_service.authenticate("jane.doe@issacasimov.in", STUDENT_PASSWORD)

        assert user.name == "Jane Doe"
        assert cache.read().find_user("jane.doe@issacasimov.in") is not None
        assert len(local_service.get_users()) == 2

    async def test_authenticate_rejects_bad_password(self, local_service):
        assert await local_service.authenticate(ADMIN_EMAIL, "nope") is None

    async def test_notifications_for_user(self, local_service):
        await local_service.add_notification(Notification(id="n-1", user_id="user-1", title="a", message="b"))
        await local_service.add_notification(Notification(id="n-2", user_id="user-2", title="a", message="b"))
        await local_service.mark_notification_read("n-1")

        mine = await local_service.get_user_notifications("user-1")

        assert [n.id for n in mine] == ["n-1"]
        assert mine[0].read

    async def test_export_csv_has_header_and_rows(self, local_service, make_request):
        await local_service.add_request(make_request())
        lines = (await local_service.export_csv()).split("\n")

        assert len(lines) == 2
        assert lines[0].startswith('"Request Date"')

    def test_status(self, local_service):
        status = local_service.get_status()
        assert status["mode"] == "local"
        assert status["components"] == 8
        assert status["scope"] is None


class TestCloudMode:
    """Remote backend: snapshots arrive through the feed and mirror to cache"""

    async def test_no_snapshot_before_first_tick(self, cloud_service):
        assert cloud_service.is_cloud
        assert cloud_service.snapshot is None
        assert cloud_service.get_components() == []

    async def test_snapshot_written_through_to_cache(self, cloud_service, cache):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        received = []

        await cloud_service.subscribe(received.append)

        assert len(received) == 1
        assert cache.exists()
        assert cache.read() == received[0]
        assert cloud_service.snapshot == received[0]

    async def test_write_then_feed_updates_snapshot(self, cloud_service, fake_client, make_request, settle):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        received = []
        await cloud_service.subscribe(received.append)

        await cloud_service.add_request(make_request())
        fake_client.emit("lab_requests")
        await settle()

        assert cloud_service.get_request("req-1") is not None
        assert len(received) == 2

    async def test_authenticate_merges_user_into_cache(self, cloud_service, cache):
        user = await cloud_service.authenticate("jane.doe@issacasimov.in", STUDENT_PASSWORD)

        assert cache.read().find_user(user.email) is not None

    async def test_failed_write_leaves_read_model_untouched(self, cloud_service, fake_client):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        await cloud_service.subscribe(lambda data: None)

        component = cloud_service.get_component("comp-1")
        component.available_quantity = 0
        cloud_service.get_components()[0].available_quantity = 0
        fake_client.fail = True
        with pytest.raises(RemoteUnavailable):
            await cloud_service.update_component(component)

        assert cloud_service.get_component("comp-1").available_quantity == 25
        assert cloud_service.snapshot.find_component("comp-1").available_quantity == 25

    async def test_authenticate_with_store_down_returns_none(self, cloud_service, fake_client, cache):
        fake_client.fail = True

        user = await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)

        assert user is None
        assert not cache.exists()

    async def test_write_failure_raises(self, cloud_service, fake_client, make_request):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        fake_client.fail = True

        with pytest.raises(RemoteUnavailable):
            await cloud_service.add_request(make_request())

    async def test_subscribe_failure_falls_back_to_cache(self, cloud_service, fake_client, cache, make_request):
        cached = default_system_data()
        cached.requests.append(make_request())
        cache.write(cached)
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        fake_client.fail = True
        received = []

        subscription = await cloud_service.subscribe(received.append)

        assert not subscription.active
        assert len(received) == 1
        assert [r.id for r in received[0].requests] == ["req-1"]

    async def test_failed_channel_is_released(self, cloud_service, fake_client):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        fake_client.fail_realtime = True
        received = []

        subscription = await cloud_service.subscribe(received.append)
        await cloud_service.cleanup()

        assert not subscription.active
        assert len(received) == 2
        assert len(fake_client.channels) == 1
        assert fake_client.removed == fake_client.channels

    async def test_refresh_failure_delivers_last_snapshot(self, cloud_service, fake_client, settle):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        received = []
        await cloud_service.subscribe(received.append)

        fake_client.fail = True
        fake_client.emit("lab_components")
        await settle()

        assert len(received) == 2
        assert received[1] == received[0]

    async def test_query_failure_uses_snapshot(self, cloud_service, fake_client, make_request, settle):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        await cloud_service.subscribe(lambda data: None)
        await cloud_service.add_request(make_request())
        fake_client.emit("lab_requests")
        await settle()

        fake_client.fail = True
        requests = await cloud_service.get_user_requests("user-1")
        csv_text = await cloud_service.export_csv()

        assert [r.id for r in requests] == ["req-1"]
        assert len(csv_text.split("\n")) == 2

    async def test_cleanup_removes_channels(self, cloud_service, fake_client):
        await cloud_service.authenticate(ADMIN_EMAIL, ADMIN_PASSWORD)
        await cloud_service.subscribe(lambda data: None)

        await cloud_service.cleanup()

        assert fake_client.removed == fake_client.channels

    async def test_reuses_existing_cache_at_start(self, adapter, cache):
        from lab_core.offline import RemoteBackend

        cache.write(default_system_data())
        service = LabDataService(RemoteBackend(adapter), cache)

        assert service.snapshot is not None
        assert len(service.get_components()) == 8


def test_local_backend_default_policy(cache):
    service = LabDataService(LocalBackend(cache), cache)
    assert service.backend.policy.admin_email == ADMIN_EMAIL

# =============================================================================
# tests/unit/test_entities.py
# Unit Tests for the entity model
# =============================================================================

import re

import pytest

from lab_core.errors import ParseFailure
from lab_core.models import (
    Notification,
    NotificationType,
    RequestStatus,
    SystemData,
    default_system_data,
    new_id,
    scope_id_for,
    utc_now_iso,
)


class TestIdentifiers:
    """Scope ids, record ids and timestamps"""

    def test_scope_id_replaces_reserved_characters(self):
        assert scope_id_for("jane.doe@issacasimov.in") == "jane_doe@issacasimov_in"
        assert scope_id_for("a#b$c[d]e") == "a_b_c_d_e"

    def test_scope_id_keeps_other_characters(self):
        assert scope_id_for("plain@host") == "plain@host"

    def test_new_id_has_prefix_and_is_unique(self):
        first, second = new_id("req"), new_id("req")
        assert first.startswith("req-")
        assert first != second

    def test_utc_now_iso_format(self):
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", utc_now_iso())


class TestRequestStatus:
    """Workflow transitions"""

    @pytest.mark.parametrize("current,target", [
        (RequestStatus.PENDING, RequestStatus.APPROVED),
        (RequestStatus.PENDING, RequestStatus.REJECTED),
        (RequestStatus.APPROVED, RequestStatus.RETURNED),
    ])
    def test_allowed(self, current, target):
        assert current.can_transition(target)

    @pytest.mark.parametrize("current,target", [
        (RequestStatus.PENDING, RequestStatus.RETURNED),
        (RequestStatus.APPROVED, RequestStatus.REJECTED),
        (RequestStatus.REJECTED, RequestStatus.APPROVED),
        (RequestStatus.RETURNED, RequestStatus.APPROVED),
    ])
    def test_rejected(self, current, target):
        assert not current.can_transition(target)


class TestSystemData:
    """Aggregate serialization"""

    def test_default_dataset_shape(self):
        data = default_system_data()

        assert len(data.users) == 1
        assert data.users[0].is_admin
        assert data.users[0].email == "admin@issacasimov.in"
        assert len(data.components) == 8
        assert all(c.available_quantity == c.total_quantity for c in data.components)
        assert data.requests == []
        assert data.notifications == []

    def test_json_round_trip_preserves_snapshot(self, make_request):
        data = default_system_data()
        data.requests.append(make_request())
        data.notifications.append(Notification(
            id="notif-1", user_id="user-1", title="Hi", message="Hello",
            type=NotificationType.WARNING,
        ))

        restored = SystemData.from_json(data.to_json())

        assert restored == data

    def test_to_json_is_key_ordered(self):
        text = default_system_data().to_json()
        assert text.index('"components"') < text.index('"notifications"') < text.index('"users"')

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"users": [{"name": "x"}]}'])
    def test_from_json_raises_parse_failure(self, text):
        with pytest.raises(ParseFailure):
            SystemData.from_json(text)

    def test_copy_is_independent(self):
        data = default_system_data()
        clone = data.copy()
        clone.components[0].available_quantity = 0

        assert data.components[0].available_quantity == 25

    def test_find_helpers(self, make_request):
        data = default_system_data()
        data.requests.append(make_request("req-9"))

        assert data.find_user("admin@issacasimov.in").id == "admin-1"
        assert data.find_component("comp-2").name == "L298N Motor Driver"
        assert data.find_request("req-9").quantity == 2
        assert data.find_request("missing") is None

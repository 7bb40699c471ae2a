from datetime import datetime, timezone

import pytest
from craftopia_notifications.models import Notification
from pydantic import ValidationError


def test_wire_aliases_are_accepted():
    notification = Notification.model_validate(
        {
            "_id": "abc",
            "type": "negotiation",
            "message": "Customer wants to negotiate",
            "createdAt": "2026-10-19T10:00:00Z",
            "isRead": False,
            "reservationId": "r-1",
            "__v": 0,
        }
    )

    assert notification.id == "abc"
    assert notification.type == "negotiation"
    assert notification.reservation_id == "r-1"
    assert notification.created_at == datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


def test_numeric_ids_become_strings():
    notification = Notification.model_validate(
        {"id": 7, "createdAt": "2026-10-19T10:00:00Z", "reservation_id": 99}
    )
    assert notification.id == "7"
    assert notification.reservation_id == "99"


def test_read_flags_mirror_each_other():
    only_is_read = Notification.model_validate(
        {"_id": "a", "createdAt": "2026-10-19T10:00:00Z", "isRead": True}
    )
    only_read = Notification.model_validate(
        {"_id": "b", "createdAt": "2026-10-19T10:00:00Z", "read": True}
    )
    disagreeing = Notification.model_validate(
        {"_id": "c", "createdAt": "2026-10-19T10:00:00Z", "isRead": False, "read": True}
    )

    assert only_is_read.read is True
    assert only_read.is_read is True
    assert disagreeing.is_read is False
    assert disagreeing.read is False


def test_with_read_sets_both_flags_and_keeps_original():
    original = Notification.model_validate({"_id": "a", "createdAt": "2026-10-19T10:00:00Z"})

    updated = original.with_read()

    assert updated.is_read is True and updated.read is True
    assert original.is_read is False


def test_unknown_type_is_preserved_and_missing_type_defaults():
    custom = Notification.model_validate(
        {"_id": "a", "type": "Promo", "createdAt": "2026-10-19T10:00:00Z"}
    )
    missing = Notification.model_validate({"_id": "b", "createdAt": "2026-10-19T10:00:00Z"})

    assert custom.type == "Promo"
    assert missing.type == "System"


def test_naive_timestamp_is_treated_as_utc():
    notification = Notification.model_validate({"_id": "a", "createdAt": "2026-10-19T10:00:00"})
    assert notification.created_at.tzinfo == timezone.utc


def test_missing_id_is_rejected():
    with pytest.raises(ValidationError):
        Notification.model_validate({"createdAt": "2026-10-19T10:00:00Z"})


def test_blank_reservation_id_is_dropped():
    notification = Notification.model_validate(
        {"_id": "a", "createdAt": "2026-10-19T10:00:00Z", "reservationId": "  "}
    )
    assert notification.reservation_id is None


def test_populated_reservation_object_yields_its_id():
    with_id = Notification.model_validate(
        {
            "_id": "a",
            "createdAt": "2026-10-19T10:00:00Z",
            "reservation": {"_id": "r-9", "price": 120, "status": "negotiating"},
        }
    )
    without_id = Notification.model_validate(
        {"_id": "b", "createdAt": "2026-10-19T10:00:00Z", "reservation": {"price": 120}}
    )

    assert with_id.reservation_id == "r-9"
    assert without_id.reservation_id is None

import pytest
from craftopia_notifications.models import Notification
from craftopia_notifications.store import (
    MarkAllRead,
    MarkRead,
    NotificationStore,
    Remove,
    ReplaceAll,
)
from fakes import make_payload


def _items(*payloads) -> tuple[Notification, ...]:
    return tuple(Notification.model_validate(p) for p in payloads)


def _loaded(*payloads) -> NotificationStore:
    store = NotificationStore()
    assert store.apply(ReplaceAll(_items(*payloads), store.begin_fetch()))
    return store


def test_latest_fetch_replaces_collection():
    store = _loaded(make_payload("a"), make_payload("b"))

    assert store.apply(ReplaceAll(_items(make_payload("c")), store.begin_fetch()))

    assert [n.id for n in store.snapshot()] == ["c"]
    assert store.applied_sequence == store.latest_sequence == 2


def test_stale_fetch_is_discarded(caplog):
    store = NotificationStore()
    first = store.begin_fetch()
    second = store.begin_fetch()

    assert store.apply(ReplaceAll(_items(make_payload("new")), second))
    with caplog.at_level("INFO", logger="craftopia_notifications.store"):
        assert not store.apply(ReplaceAll(_items(make_payload("old")), first))

    assert [n.id for n in store.snapshot()] == ["new"]
    assert store.applied_sequence == second
    assert any(r.getMessage() == "stale_fetch_discarded" for r in caplog.records)


def test_earlier_result_arriving_first_is_also_discarded():
    store = NotificationStore()
    first = store.begin_fetch()
    store.begin_fetch()

    assert not store.apply(ReplaceAll(_items(make_payload("old")), first))
    assert len(store) == 0


def test_duplicate_ids_keep_last_occurrence():
    store = _loaded(
        make_payload("a", message="first"),
        make_payload("a", message="second"),
    )

    assert len(store) == 1
    assert store.get("a").message == "second"


def test_mark_read_is_idempotent():
    store = _loaded(make_payload("a"))
    revision = store.revision

    assert store.apply(MarkRead("a"))
    assert not store.apply(MarkRead("a"))
    assert store.get("a").is_read
    assert store.revision == revision + 1


def test_edits_to_unknown_ids_change_nothing():
    store = _loaded(make_payload("a"))

    assert not store.apply(MarkRead("missing"))
    assert not store.apply(Remove("missing"))
    assert "a" in store


def test_mark_all_read_and_remove():
    store = _loaded(make_payload("a"), make_payload("b", is_read=True), make_payload("c"))

    assert store.apply(MarkAllRead())
    assert all(n.is_read and n.read for n in store.snapshot())
    assert not store.apply(MarkAllRead())

    assert store.apply(Remove("b"))
    assert "b" not in store


def test_edit_during_in_flight_fetch_survives_replacement():
    store = _loaded(make_payload("a"), make_payload("b"))
    sequence = store.begin_fetch()

    store.apply(MarkRead("a"))
    store.apply(Remove("b"))
    # The in-flight fetch was answered before the server saw the edits.
    assert store.apply(ReplaceAll(_items(make_payload("a"), make_payload("b")), sequence))

    assert store.get("a").is_read
    assert "b" not in store


def test_edits_before_a_fetch_are_not_replayed():
    store = _loaded(make_payload("a"))
    store.apply(MarkRead("a"))

    # Server still reports unread; the newer fetch is authoritative.
    assert store.apply(ReplaceAll(_items(make_payload("a")), store.begin_fetch()))

    assert not store.get("a").is_read


def test_replayed_edits_are_dropped_after_next_fetch():
    store = _loaded(make_payload("a"))
    in_flight = store.begin_fetch()
    store.apply(MarkRead("a"))
    store.apply(ReplaceAll(_items(make_payload("a")), in_flight))
    assert store.get("a").is_read

    store.apply(ReplaceAll(_items(make_payload("a")), store.begin_fetch()))

    assert not store.get("a").is_read


def test_reset_clears_and_makes_pending_fetches_stale():
    store = _loaded(make_payload("a"))
    pending = store.begin_fetch()

    store.reset()

    assert len(store) == 0
    assert not store.apply(ReplaceAll(_items(make_payload("b")), pending))
    assert len(store) == 0


def test_unsupported_mutation_is_rejected():
    store = NotificationStore()
    with pytest.raises(TypeError):
        store.apply(object())

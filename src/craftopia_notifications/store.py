"""Canonical notification collection with a single mutation entry point.

Every change, whether an optimistic local edit or a fetched replacement,
goes through ``NotificationStore.apply``. Fetch results carry the sequence
number handed out by ``begin_fetch``; only the most recently initiated fetch
may replace the collection.

Optimistic edits are journaled with the newest fetch sequence issued at the
time they were applied. When fetch ``n`` replaces the collection, edits
recorded at sequence ``n`` or later were made while that fetch was in flight
and are replayed on top of the fetched data. Older edits are dropped: the
fetched data already reflects the server's answer to them. The next fetch
issued after an edit is therefore the one that reconciles it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from .models import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplaceAll:
    notifications: tuple[Notification, ...]
    sequence: int


@dataclass(frozen=True)
class MarkRead:
    notification_id: str


@dataclass(frozen=True)
class MarkAllRead:
    pass


@dataclass(frozen=True)
class Remove:
    notification_id: str


LocalEdit = Union[MarkRead, MarkAllRead, Remove]
Mutation = Union[ReplaceAll, MarkRead, MarkAllRead, Remove]


@dataclass
class _JournalEntry:
    edit: LocalEdit
    sequence: int


@dataclass
class NotificationStore:
    _items: dict[str, Notification] = field(default_factory=dict)
    _journal: list[_JournalEntry] = field(default_factory=list)
    _issued_sequence: int = 0
    _applied_sequence: int = 0
    revision: int = 0

    def begin_fetch(self) -> int:
        """Allocate the sequence number for a newly initiated fetch."""
        self._issued_sequence += 1
        return self._issued_sequence

    @property
    def latest_sequence(self) -> int:
        return self._issued_sequence

    @property
    def applied_sequence(self) -> int:
        return self._applied_sequence

    def is_latest(self, sequence: int) -> bool:
        return sequence == self._issued_sequence

    def snapshot(self) -> list[Notification]:
        return list(self._items.values())

    def get(self, notification_id: str) -> Notification | None:
        return self._items.get(notification_id)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def apply(self, mutation: Mutation) -> bool:
        """Apply a mutation. Returns False when it was discarded or changed nothing."""
        if isinstance(mutation, ReplaceAll):
            return self._replace(mutation)

        changed = self._edit(mutation)
        self._journal.append(_JournalEntry(mutation, self._issued_sequence))
        if changed:
            self.revision += 1
        return changed

    def reset(self) -> None:
        """Drop all state, e.g. on logout. Pending fetches become stale."""
        self._items.clear()
        self._journal.clear()
        self._issued_sequence += 1
        self._applied_sequence = self._issued_sequence
        self.revision += 1

    def _replace(self, mutation: ReplaceAll) -> bool:
        if not self.is_latest(mutation.sequence):
            logger.info(
                "stale_fetch_discarded",
                extra={"sequence": mutation.sequence, "latest": self._issued_sequence},
            )
            return False

        items: dict[str, Notification] = {}
        for notification in mutation.notifications:
            items[notification.id] = notification
        self._items = items
        self._applied_sequence = mutation.sequence

        self._journal = [
            entry for entry in self._journal if entry.sequence >= mutation.sequence
        ]
        if self._journal:
            logger.debug(
                "replaying_optimistic_edits",
                extra={"count": len(self._journal), "sequence": mutation.sequence},
            )
        for entry in self._journal:
            self._edit(entry.edit)

        self.revision += 1
        return True

    def _edit(self, edit: LocalEdit) -> bool:
        if isinstance(edit, MarkRead):
            current = self._items.get(edit.notification_id)
            if current is None or (current.is_read and current.read):
                return False
            self._items[edit.notification_id] = current.with_read()
            return True
        if isinstance(edit, MarkAllRead):
            changed = False
            for notification_id, current in self._items.items():
                if not (current.is_read and current.read):
                    self._items[notification_id] = current.with_read()
                    changed = True
            return changed
        if isinstance(edit, Remove):
            return self._items.pop(edit.notification_id, None) is not None
        raise TypeError(f"Unsupported mutation: {edit!r}")


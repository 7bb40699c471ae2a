"""Pure view derivations over a notification snapshot.

Nothing here performs I/O or mutates its inputs.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from .models import (
    FilterState,
    GroupedNotifications,
    Notification,
    NotificationType,
    NotificationView,
    SyncError,
    SyncState,
)

DEFAULT_ICON = "🔔"

ICONS: dict[NotificationType, str] = {
    NotificationType.BOOKING: "📅",
    NotificationType.REVIEW: "⭐",
    NotificationType.PAYMENT: "💰",
    NotificationType.MESSAGE: "💬",
    NotificationType.SYSTEM: DEFAULT_ICON,
    NotificationType.NEGOTIATION: "🤝",
    NotificationType.STATUS_UPDATE: "✅",
}

_TYPE_LOOKUP = {member.value.lower(): member for member in NotificationType}


def normalize_type(raw: str | None) -> NotificationType | None:
    """Resolve wire spellings such as ``negotiation`` or ``STATUS_UPDATE``."""
    if not raw:
        return None
    key = raw.strip().lower().replace("_", "").replace("-", "").replace(" ", "")
    return _TYPE_LOOKUP.get(key)


def icon_for(notification_type: str | None) -> str:
    resolved = normalize_type(notification_type)
    if resolved is None:
        return DEFAULT_ICON
    return ICONS.get(resolved, DEFAULT_ICON)


def sort_by_recency_descending(notifications: Iterable[Notification]) -> list[Notification]:
    # sorted() is stable, so equal timestamps keep fetch order.
    return sorted(notifications, key=lambda n: n.created_at, reverse=True)


def _local_date(value: datetime, now: datetime):
    if now.tzinfo is None:
        # Naive clock: compare in the machine's local timezone.
        return value.astimezone().date()
    return value.astimezone(now.tzinfo).date()


def partition_by_date(
    notifications: Iterable[Notification], now: datetime
) -> GroupedNotifications:
    """Bucket notifications into today / yesterday / older by calendar day."""
    today = now.date()
    yesterday = today - timedelta(days=1)
    grouped = GroupedNotifications()
    for notification in notifications:
        day = _local_date(notification.created_at, now)
        if day == today:
            grouped.today.append(notification)
        elif day == yesterday:
            grouped.yesterday.append(notification)
        else:
            grouped.older.append(notification)
    return grouped


def format_relative_time(created_at: datetime, now: datetime) -> str:
    """Short label for how long ago ``created_at`` was, floored to whole units."""
    reference = now if now.tzinfo is not None else now.astimezone()
    elapsed_seconds = (reference - created_at).total_seconds()
    minutes = int(elapsed_seconds // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days}d ago"
    return created_at.astimezone(reference.tzinfo).strftime("%x")


def filter_notifications(
    notifications: Iterable[Notification], filter_state: FilterState
) -> list[Notification]:
    if filter_state is FilterState.UNREAD:
        return [n for n in notifications if not n.is_read]
    if filter_state is FilterState.READ:
        return [n for n in notifications if n.is_read]
    return list(notifications)


def count_unread(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.is_read)


def build_view(
    notifications: Iterable[Notification],
    now: datetime,
    *,
    filter_state: FilterState = FilterState.ALL,
    sync_state: SyncState = SyncState.IDLE,
    error: SyncError | None = None,
) -> NotificationView:
    ordered = sort_by_recency_descending(notifications)
    visible = filter_notifications(ordered, filter_state)
    unread = count_unread(ordered)
    return NotificationView(
        all=visible,
        grouped_by_date=partition_by_date(visible, now),
        unread_count=unread,
        total_count=len(ordered),
        read_count=len(ordered) - unread,
        filter_state=filter_state,
        sync_state=sync_state,
        error=error,
    )

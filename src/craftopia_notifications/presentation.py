"""Plain-text rendering of a notification view."""

from __future__ import annotations

from datetime import datetime

from .models import FilterState, Notification, NotificationView
from .negotiation import is_negotiation_eligible
from .orchestrator import format_relative_time, icon_for

EMPTY_MESSAGES = {
    FilterState.ALL: "You don't have any notifications yet.",
    FilterState.UNREAD: "You're all caught up! No unread notifications.",
    FilterState.READ: "No read notifications yet.",
}


def render_card(notification: Notification, now: datetime) -> str:
    marker = "●" if not notification.is_read else " "
    line = (
        f"{marker} {icon_for(notification.type)} [{notification.type}] "
        f"{format_relative_time(notification.created_at, now)}: {notification.message}"
    )
    if is_negotiation_eligible(notification):
        line += f"  (negotiable: reservation {notification.reservation_id})"
    return line


def render_view(view: NotificationView, now: datetime) -> list[str]:
    lines = [
        f"Notifications: {view.total_count} total, {view.unread_count} unread "
        f"[filter: {view.filter_state.value}]"
    ]
    if view.error is not None:
        hint = " (refresh to try again)" if view.error.retryable else ""
        lines.append(f"! {view.error.message}{hint}")

    if not view.all:
        lines.append(EMPTY_MESSAGES[view.filter_state])
        return lines

    # Date groups only make sense for the unfiltered feed.
    if view.filter_state is not FilterState.ALL:
        lines.extend(render_card(n, now) for n in view.all)
        return lines

    groups = view.grouped_by_date
    for title, items in (("Today", groups.today), ("Yesterday", groups.yesterday), ("Older", groups.older)):
        if not items:
            continue
        lines.append(f"-- {title} --")
        lines.extend(render_card(n, now) for n in items)
    return lines

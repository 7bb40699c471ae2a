"""Notification synchronization loop.

Owns the canonical notification collection for one signed-in session, polls
the backend on a fixed interval, applies optimistic edits for user actions
and schedules the refetches that reconcile them with server truth.

Uses dependency injection - one instance per session, no module singletons.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from .auth import AuthenticationError
from .client import NotFoundError, NotificationClient, TransportError, user_message
from .config import Settings
from .models import FilterState, NotificationView, SyncError, SyncState
from .orchestrator import build_view, count_unread
from .store import MarkAllRead, MarkRead, Mutation, NotificationStore, Remove, ReplaceAll

logger = logging.getLogger(__name__)

# Failures that leave the loop settled with an error surfaced to the view.
SYNC_FAILURES = (TransportError, AuthenticationError)

ViewListener = Callable[[NotificationView], None]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class NotificationSync:
    """Single writer of the notification collection for a session."""

    def __init__(
        self,
        client: NotificationClient,
        settings: Settings,
        *,
        store: NotificationStore | None = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.client = client
        self.settings = settings
        self.store = store or NotificationStore()
        self.clock = clock
        self.state = SyncState.IDLE
        self.error: Optional[SyncError] = None
        self.filter_state = FilterState.ALL
        self._fetch_failed = False
        self._listeners: list[ViewListener] = []
        self._poll_task: Optional[asyncio.Task[None]] = None
        self._reconcile_task: Optional[asyncio.Task[None]] = None
        self._reconcile_tasks: set[asyncio.Task[None]] = set()
        self._reconcile_waiting = False

    async def __aenter__(self) -> "NotificationSync":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def start(self) -> None:
        """Fetch once and begin polling every ``poll_interval_seconds``."""
        if self.is_running:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(
            "notification_polling_started",
            extra={"interval_seconds": self.settings.poll_interval_seconds},
        )
        await self.refresh(user_initiated=True)

    async def stop(self) -> None:
        """Cancel polling and any pending reconcile. The collection is kept."""
        for task in (self._poll_task, *self._reconcile_tasks):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poll_task = None
        self._reconcile_task = None
        self._reconcile_tasks.clear()
        self._reconcile_waiting = False
        logger.info("notification_polling_stopped")

    async def clear(self) -> None:
        """End of session: stop background work and discard all state."""
        await self.stop()
        self.store.reset()
        self.state = SyncState.IDLE
        self.error = None
        self._fetch_failed = False
        self.filter_state = FilterState.ALL
        self._notify()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.poll_interval_seconds)
            logger.debug("notification_poll_tick")
            try:
                await self.refresh(user_initiated=False)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error(
                    "notification_poll_tick_failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=exc,
                )

    async def refresh(self, *, user_initiated: bool = True) -> bool:
        """Fetch the feed and replace the collection if this is still the newest fetch."""
        sequence = self.store.begin_fetch()
        self.state = SyncState.FETCHING
        self._notify()
        try:
            notifications = await self.client.list_notifications()
        except SYNC_FAILURES as exc:
            if not self.store.is_latest(sequence):
                logger.info("stale_fetch_failure_ignored", extra={"sequence": sequence})
                return False
            logger.warning(
                "notification_fetch_failed",
                extra={
                    "sequence": sequence,
                    "user_initiated": user_initiated,
                    "error": str(exc),
                },
            )
            self._fetch_failed = True
            self.state = SyncState.SETTLED
            self._surface("refresh", exc, retryable=user_initiated)
            return False

        if not self.store.apply(ReplaceAll(tuple(notifications), sequence)):
            return False
        self._fetch_failed = False
        if self.error is not None and self.error.operation == "refresh":
            self.error = None
        self.state = SyncState.SETTLED
        self._notify()
        return True

    def schedule_reconcile(self, delay: float | None = None) -> asyncio.Task[None]:
        """Refetch shortly so server truth overwrites optimistic state.

        A reconcile that has not started fetching yet absorbs later requests.
        """
        if self._reconcile_task is not None and self._reconcile_waiting:
            return self._reconcile_task
        wait = self.settings.reconcile_delay_seconds if delay is None else delay
        self._reconcile_waiting = True
        task = asyncio.create_task(self._reconcile_after(wait))
        # Tracked until done so stop() can cancel reconciles that are already fetching.
        self._reconcile_tasks.add(task)
        task.add_done_callback(self._reconcile_tasks.discard)
        self._reconcile_task = task
        return task

    async def _reconcile_after(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        finally:
            self._reconcile_waiting = False
        await self.refresh(user_initiated=False)

    async def mark_read(self, notification_id: str) -> bool:
        self._commit(MarkRead(notification_id))
        try:
            await self.client.mark_read(notification_id)
        except SYNC_FAILURES as exc:
            # Optimistic state stays; the reconcile below restores server truth.
            logger.warning(
                "mark_read_failed",
                extra={"notification_id": notification_id, "error": str(exc)},
            )
            self._surface("mark_read", exc)
            return False
        finally:
            self.schedule_reconcile()
        return True

    async def mark_all_read(self) -> bool:
        self._commit(MarkAllRead())
        try:
            await self.client.mark_all_read()
        except SYNC_FAILURES as exc:
            logger.warning("mark_all_read_failed", extra={"error": str(exc)})
            self._surface("mark_all_read", exc)
            return False
        finally:
            self.schedule_reconcile()
        return True

    async def delete(self, notification_id: str) -> bool:
        self._commit(Remove(notification_id))
        try:
            await self.client.delete_notification(notification_id)
        except NotFoundError:
            logger.info("notification_already_deleted", extra={"notification_id": notification_id})
            return True
        except SYNC_FAILURES as exc:
            logger.warning(
                "delete_failed_forcing_resync",
                extra={"notification_id": notification_id, "error": str(exc)},
            )
            self._surface("delete", exc)
            await self.refresh(user_initiated=False)
            return False
        return True

    async def update_price(self, reservation_id: str, price: Decimal) -> None:
        """Counter-offer on a reservation. Raises on transport failure."""
        try:
            await self.client.update_negotiation_price(reservation_id, price)
        except SYNC_FAILURES as exc:
            logger.warning(
                "negotiation_price_update_failed",
                extra={"reservation_id": reservation_id, "error": str(exc)},
            )
            self._surface("update_price", exc)
            raise
        logger.info("negotiation_price_updated", extra={"reservation_id": reservation_id})
        self.schedule_reconcile()

    async def reject_negotiation(self, reservation_id: str) -> None:
        """Reject a negotiation on a reservation. Raises on transport failure."""
        try:
            await self.client.reject_negotiation(reservation_id)
        except SYNC_FAILURES as exc:
            logger.warning(
                "negotiation_reject_failed",
                extra={"reservation_id": reservation_id, "error": str(exc)},
            )
            self._surface("reject_negotiation", exc)
            raise
        logger.info("negotiation_rejected", extra={"reservation_id": reservation_id})
        self.schedule_reconcile()

    def set_filter(self, filter_state: FilterState | str) -> None:
        self.filter_state = FilterState(filter_state)
        self._notify()

    def dismiss_error(self) -> None:
        if self.error is not None:
            self.error = None
            self._notify()

    def unread_count(self) -> int:
        return count_unread(self.store.snapshot())

    def badge_count(self) -> int:
        """Unread count for badges; zero while the latest fetch has failed."""
        if self._fetch_failed:
            return 0
        return self.unread_count()

    def view(self, now: datetime | None = None) -> NotificationView:
        return build_view(
            self.store.snapshot(),
            now or self.clock(),
            filter_state=self.filter_state,
            sync_state=self.state,
            error=self.error,
        )

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Register a callback that receives the view after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, mutation: Mutation) -> None:
        if self.store.apply(mutation):
            self._notify()

    def _surface(self, operation: str, exc: BaseException, *, retryable: bool = False) -> None:
        self.error = SyncError(
            operation=operation,
            message=user_message(exc),
            retryable=retryable,
        )
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("notification_listener_failed")

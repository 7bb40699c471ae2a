"""Price negotiation workflow attached to a notification card.

A customer asks to renegotiate a reservation's price; the artisan answers
from the notification with a counter-offer or a rejection. Both act on the
linked reservation, then let the sync loop reconcile the feed.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any

from .models import Notification, NotificationType
from .orchestrator import normalize_type
from .sync import SYNC_FAILURES

if TYPE_CHECKING:
    from .sync import NotificationSync

logger = logging.getLogger(__name__)

NEGOTIATION_KEYWORD = "negotiate"
INVALID_PRICE_MESSAGE = "Please enter a valid price greater than 0"


class NegotiationState(str, Enum):
    VIEWING = "viewing"
    EDITING_PRICE = "editing_price"
    REJECT_CONFIRMING = "reject_confirming"
    SUBMITTING = "submitting"


class PriceValidationError(ValueError):
    """Raised when a draft price is not a positive number."""


class NegotiationUnavailableError(RuntimeError):
    """Raised when acting on a notification that cannot be negotiated."""


def is_negotiation_eligible(notification: Notification) -> bool:
    if not notification.reservation_id:
        return False
    type_matches = normalize_type(notification.type) is NotificationType.NEGOTIATION
    text_matches = NEGOTIATION_KEYWORD in notification.message.lower()
    return type_matches or text_matches


def parse_price(value: Any) -> Decimal:
    """Parse a user-entered price; must be a finite number above zero."""
    if isinstance(value, bool) or value is None:
        raise PriceValidationError(INVALID_PRICE_MESSAGE)
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise PriceValidationError(INVALID_PRICE_MESSAGE) from exc
    if not price.is_finite() or price <= 0:
        raise PriceValidationError(INVALID_PRICE_MESSAGE)
    # The wire format is a JSON number; it must survive conversion to float.
    as_float = float(price)
    if not math.isfinite(as_float) or as_float <= 0:
        raise PriceValidationError(INVALID_PRICE_MESSAGE)
    return price


class NegotiationSession:
    """Per-card negotiation state machine.

    Only one submission may be in flight; repeated submits while
    ``SUBMITTING`` are ignored.
    """

    def __init__(self, sync: NotificationSync, notification: Notification) -> None:
        self.sync = sync
        self.notification = notification
        self.state = NegotiationState.VIEWING
        self.draft = ""
        self.validation_message: str | None = None
        self.error_message: str | None = None
        self.in_flight = False

    @property
    def eligible(self) -> bool:
        return is_negotiation_eligible(self.notification)

    @property
    def reservation_id(self) -> str:
        reservation_id = self.notification.reservation_id
        if not self.eligible or reservation_id is None:
            raise NegotiationUnavailableError(
                f"notification {self.notification.id} has no negotiable reservation"
            )
        return reservation_id

    def begin_edit(self) -> None:
        self._require_idle()
        self.state = NegotiationState.EDITING_PRICE
        self.validation_message = None
        self.error_message = None

    def set_draft(self, value: str) -> None:
        self.draft = value
        self.validation_message = None

    def request_reject(self) -> None:
        self._require_idle()
        self.state = NegotiationState.REJECT_CONFIRMING
        self.error_message = None

    def cancel(self) -> None:
        if self.state is NegotiationState.SUBMITTING:
            return
        self.state = NegotiationState.VIEWING
        self.draft = ""
        self.validation_message = None

    async def submit_price(self) -> bool:
        if self.in_flight:
            logger.debug("negotiation_submit_ignored_in_flight", extra={"notification_id": self.notification.id})
            return False
        reservation_id = self.reservation_id
        if self.state is not NegotiationState.EDITING_PRICE:
            return False
        try:
            price = parse_price(self.draft)
        except PriceValidationError as exc:
            self.validation_message = str(exc)
            return False

        self._enter_submitting()
        try:
            await self.sync.update_price(reservation_id, price)
        except SYNC_FAILURES as exc:
            self._fail(str(exc), settle=NegotiationState.EDITING_PRICE)
            return False
        else:
            self.state = NegotiationState.VIEWING
            self.draft = ""
            return True
        finally:
            self._leave_submitting(NegotiationState.EDITING_PRICE)

    async def confirm_reject(self) -> bool:
        if self.in_flight:
            logger.debug("negotiation_reject_ignored_in_flight", extra={"notification_id": self.notification.id})
            return False
        reservation_id = self.reservation_id
        if self.state is not NegotiationState.REJECT_CONFIRMING:
            return False

        self._enter_submitting()
        try:
            await self.sync.reject_negotiation(reservation_id)
        except SYNC_FAILURES as exc:
            self._fail(str(exc), settle=NegotiationState.VIEWING)
            return False
        else:
            self.state = NegotiationState.VIEWING
            return True
        finally:
            self._leave_submitting(NegotiationState.VIEWING)

    def _require_idle(self) -> None:
        # Raises for ineligible cards before any state change.
        _ = self.reservation_id
        if self.state is NegotiationState.SUBMITTING:
            raise NegotiationUnavailableError("a negotiation submission is already in flight")

    def _enter_submitting(self) -> None:
        self.in_flight = True
        self.state = NegotiationState.SUBMITTING
        self.validation_message = None
        self.error_message = None

    def _leave_submitting(self, settle: NegotiationState) -> None:
        # Unexpected errors still propagate, but never leave the card locked.
        self.in_flight = False
        if self.state is NegotiationState.SUBMITTING:
            self.state = settle

    def _fail(self, detail: str, *, settle: NegotiationState) -> None:
        sync_error = self.sync.error
        self.error_message = sync_error.message if sync_error is not None else detail
        logger.info(
            "negotiation_submission_failed",
            extra={"notification_id": self.notification.id, "settled_state": settle.value},
        )
        self.state = settle

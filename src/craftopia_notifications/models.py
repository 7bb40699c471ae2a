"""Data model for the notification feed."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class NotificationType(str, Enum):
    """Known notification types. Payloads may carry others; those are kept as-is."""

    BOOKING = "Booking"
    REVIEW = "Review"
    PAYMENT = "Payment"
    MESSAGE = "Message"
    SYSTEM = "System"
    NEGOTIATION = "Negotiation"
    STATUS_UPDATE = "StatusUpdate"


class FilterState(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    READ = "read"


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"


class Notification(BaseModel):
    """A server-owned notification as cached by the client.

    Instances are immutable; local edits produce copies via ``with_read``.
    """

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    type: str = "System"
    message: str = ""
    title: str | None = None
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "created_at"))
    is_read: bool = Field(default=False, validation_alias=AliasChoices("isRead", "is_read"))
    read: bool = False
    reservation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reservationId", "reservation_id", "reservation"),
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _mirror_read_flags(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        read_keys = [key for key in ("isRead", "is_read") if key in data]
        if read_keys:
            data["read"] = bool(data[read_keys[0]])
        elif "read" in data:
            data["is_read"] = bool(data["read"])
        return data

    @field_validator("id", "reservation_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        if isinstance(value, dict):
            # Populated references, e.g. an embedded reservation document.
            value = value.get("_id", value.get("id"))
        if isinstance(value, bool):
            raise ValueError("identifier must not be a boolean")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: Any) -> Any:
        if value is None or value == "":
            return NotificationType.SYSTEM.value
        return value

    @field_validator("message", mode="before")
    @classmethod
    def _default_message(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("created_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def with_read(self) -> "Notification":
        """Copy with both read flags set."""
        return self.model_copy(update={"is_read": True, "read": True})


class GroupedNotifications(BaseModel):
    today: list[Notification] = Field(default_factory=list)
    yesterday: list[Notification] = Field(default_factory=list)
    older: list[Notification] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.today) + len(self.yesterday) + len(self.older)


class SyncError(BaseModel):
    """An error surfaced to the presentation layer."""

    operation: str
    message: str
    retryable: bool = False


class NotificationView(BaseModel):
    """Read-only snapshot handed to the presentation layer."""

    all: list[Notification]
    grouped_by_date: GroupedNotifications
    unread_count: int
    total_count: int
    read_count: int
    filter_state: FilterState = FilterState.ALL
    sync_state: SyncState = SyncState.IDLE
    error: SyncError | None = None

"""HTTP client for the Craftopia notification and reservation endpoints."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from urllib.parse import quote
from uuid import uuid4

import httpx
from pydantic import ValidationError

from .auth import AuthenticationError, SessionAuth
from .config import Settings
from .models import Notification

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base error for backend request failures."""


class NetworkError(TransportError):
    """Raised when the backend cannot be reached or the request times out."""


class ServerError(TransportError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        payload: Any = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
        self.detail = detail


class AuthError(ServerError):
    """Raised when the backend rejects the session (401/403)."""


class NotFoundError(ServerError):
    """Raised when the backend resource is not found."""


class RequestValidationError(ServerError):
    """Raised when the backend rejects the request body (400/422)."""


def _error_detail(payload: Any) -> str | None:
    if isinstance(payload, dict):
        for key in ("message", "error", "msg", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def user_message(exc: BaseException) -> str:
    """Translate a failure into text suitable for showing to the user."""
    if isinstance(exc, AuthenticationError):
        return "Your session has expired. Please login again."
    if isinstance(exc, AuthError):
        if exc.status_code == 403:
            return "You do not have permission to perform this action."
        return "Authentication failed. Please login again."
    if isinstance(exc, NotFoundError):
        return "Resource not found."
    if isinstance(exc, RequestValidationError):
        return exc.detail or "Invalid request. Please check your input."
    if isinstance(exc, ServerError):
        return exc.detail or "Server error. Please try again later."
    if isinstance(exc, NetworkError):
        return "Unable to connect to the server. Please check your connection and try again."
    return str(exc) or "An unexpected error occurred."


def extract_notification_items(payload: Any) -> list[Any] | None:
    """Return the raw notification entries of a list response, or None if unrecognized."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("notifications", "data"):
            items = payload.get(key)
            if isinstance(items, list):
                return items
    return None


def parse_notifications(payload: Any) -> list[Notification]:
    items = extract_notification_items(payload)
    if items is None:
        logger.warning(
            "notifications_payload_shape_mismatch",
            extra={"payload_type": type(payload).__name__},
        )
        return []

    notifications: list[Notification] = []
    for index, item in enumerate(items):
        try:
            notifications.append(Notification.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "notification_entry_skipped",
                extra={"index": index, "errors": exc.error_count()},
            )
    return notifications


class NotificationClient:
    """HTTP client for the notification feed and negotiation actions."""

    NOTIFICATIONS_PATH = "/notifications"
    READ_MARKER_PATH = "/notifications/read"

    def __init__(
        self,
        settings: Settings,
        auth: SessionAuth,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.auth = auth
        self.http = http or httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=httpx.Timeout(
                connect=settings.connect_timeout_seconds,
                read=settings.request_timeout_seconds,
                write=10.0,
                pool=10.0,
            ),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request_id = str(uuid4())
        request_headers = self.auth.get_headers(request_id)
        if headers:
            request_headers.update(headers)
        try:
            response = await self.http.request(
                method,
                path,
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.TimeoutException as exc:
            raise NetworkError(f"backend_timeout: Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"backend_connection_failed: {exc}") from exc

        payload = self._decode(response)
        if response.is_success:
            return payload

        detail = _error_detail(payload)
        status_code = response.status_code
        logger.warning(
            "backend_request_failed",
            extra={
                "method": method,
                "path": path,
                "status_code": status_code,
                "request_id": request_id,
            },
        )
        if status_code in {401, 403}:
            raise AuthError("backend_auth_failed", status_code, payload, detail)
        if status_code == 404:
            raise NotFoundError("backend_not_found", status_code, payload, detail)
        if status_code in {400, 422}:
            raise RequestValidationError(
                f"backend_validation_failed_{status_code}", status_code, payload, detail
            )
        raise ServerError(f"backend_error_{status_code}", status_code, payload, detail)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"status_code": response.status_code, "text": response.text}

    async def list_notifications(self) -> list[Notification]:
        payload = await self.call("GET", self.NOTIFICATIONS_PATH)
        return parse_notifications(payload)

    async def mark_read(self, notification_id: str) -> None:
        try:
            await self.call(
                "PATCH",
                f"{self.NOTIFICATIONS_PATH}/{quote(notification_id, safe='')}",
                json={"isRead": True},
            )
        except TransportError as exc:
            logger.info(
                "mark_read_primary_failed_trying_fallback",
                extra={"notification_id": notification_id, "error": str(exc)},
            )
            await self.call(
                "PUT",
                self.READ_MARKER_PATH,
                json={"notificationId": notification_id},
            )

    async def mark_all_read(self) -> None:
        await self.call("PUT", self.READ_MARKER_PATH, json={})

    async def delete_notification(self, notification_id: str) -> None:
        await self.call(
            "DELETE",
            f"{self.NOTIFICATIONS_PATH}/{quote(notification_id, safe='')}",
        )

    async def update_negotiation_price(self, reservation_id: str, price: Decimal | float) -> None:
        await self.call(
            "PUT",
            f"/reservations/{quote(reservation_id, safe='')}/price",
            json={"price": float(price)},
        )

    async def reject_negotiation(self, reservation_id: str) -> None:
        await self.call(
            "PUT",
            f"/reservations/{quote(reservation_id, safe='')}/negotiation",
            json={"status": "rejected"},
        )

    async def get_unread_count(self) -> int:
        """Unread count for badges. Failures degrade to zero."""
        try:
            notifications = await self.list_notifications()
        except TransportError as exc:
            logger.warning("unread_count_fetch_failed", extra={"error": str(exc)})
            return 0
        return sum(1 for notification in notifications if not notification.is_read)

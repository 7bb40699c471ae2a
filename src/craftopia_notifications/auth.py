"""Authentication helpers for backend requests."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import jwt

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .config import Settings


class AuthenticationError(Exception):
    """Raised when no usable session token is available."""


class SessionAuth:
    """Builds backend auth headers from the signed-in user's session token."""

    # Treat tokens this close to expiry as already expired.
    EXPIRY_LEEWAY_SECONDS = 30

    def __init__(self, settings: Settings, token: str | None = None) -> None:
        self.settings = settings
        self._token = token

    @property
    def token(self) -> str:
        if self._token is not None:
            return self._token.strip()
        return self.settings.api_token.get_secret_value().strip()

    def set_token(self, token: str | None) -> None:
        """Swap the session token, e.g. after login or logout."""
        self._token = token

    def token_expires_at(self) -> float | None:
        """Return the `exp` claim of the session token, if it is a JWT carrying one."""
        token = self.token
        if not token:
            return None
        try:
            # The backend verifies signatures; the client only needs the claims.
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.DecodeError:
            logger.debug("session_token_not_jwt")
            return None
        exp = claims.get("exp")
        if isinstance(exp, (int, float)):
            return float(exp)
        return None

    def is_expired(self, now: float | None = None) -> bool:
        expires_at = self.token_expires_at()
        if expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= expires_at - self.EXPIRY_LEEWAY_SECONDS

    def get_headers(self, request_id: str) -> dict:
        token = self.token
        if not token:
            raise AuthenticationError("session_token_missing")
        if self.is_expired():
            logger.warning("session_token_expired")
            raise AuthenticationError("session_token_expired")
        return {
            "Authorization": f"Bearer {token}",
            "X-Request-Id": request_id,
        }

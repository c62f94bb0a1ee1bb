"""OAuth token handling for the Strava activity feed.

``refresh_access_token`` exchanges a refresh token for a new access token with
safe logging that never leaks secrets. ``StoredTokenProvider`` keeps the token
set in the durable store and hands out a valid bearer credential, refreshing it
shortly before expiry.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Protocol

import requests

from .config import (
    CLIENT_ID,
    CLIENT_SECRET,
    REQUEST_TIMEOUT,
    STRAVA_OAUTH_URL,
    TOKEN_REFRESH_MARGIN_SECONDS,
    TOKEN_STATE_KEY,
)
from .errors import NotAuthenticatedError
from .storage import KeyValueStore, load_record, save_record
from .strava_client.response_handling import extract_error
from .strava_client.session import create_default_session

LOGGER = logging.getLogger(__name__)

_session = create_default_session()


class TokenError(Exception):
    """Raised when token refresh fails."""


class TokenProvider(Protocol):
    def valid_token(self) -> str: ...


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    refresh_token: str
    expires_at: int

    def to_record(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "TokenSet":
        return cls(
            access_token=str(record["access_token"]),
            refresh_token=str(record["refresh_token"]),
            expires_at=int(record["expires_at"]),
        )


def _parse_tokens(record: Mapping[str, Any]) -> TokenSet | None:
    if not record:
        return None
    return TokenSet.from_record(record)


def _mask_tail(value: str | None, visible: int = 4) -> str:
    if not value:
        return ""
    tail = value[-visible:]
    return f"****{tail}" if len(value) > visible else "****" + tail


def refresh_access_token(refresh_token: str) -> TokenSet:
    """Exchange a refresh token for a new token set.

    Args:
        refresh_token: The existing Strava refresh token.

    Returns:
        The new ``TokenSet``. Strava may rotate the refresh token; when the
        response omits it the old one is kept.

    Raises:
        TokenError: If credentials are missing, the HTTP request fails, or the
            JSON is invalid or lacks an access token.
    """
    if not CLIENT_ID or not CLIENT_SECRET:
        raise TokenError(
            "Client credentials not configured (CLIENT_ID / CLIENT_SECRET missing)"
        )
    if not refresh_token:
        raise TokenError("Missing refresh token")

    payload = {
        "client_id": CLIENT_ID,
        "client_secret": CLIENT_SECRET,
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }
    LOGGER.info("Refreshing Strava token refresh_token=%s", _mask_tail(refresh_token))
    LOGGER.debug("Token endpoint: %s", STRAVA_OAUTH_URL)

    try:
        resp = _session.post(STRAVA_OAUTH_URL, data=payload, timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as exc:
        LOGGER.error("Token request transport error: %s", exc)
        raise TokenError("Transport failure during token refresh") from exc

    status = resp.status_code
    LOGGER.debug("Token endpoint status=%s", status)
    if status >= 400:
        detail = extract_error(resp)
        LOGGER.error(
            "Token refresh failed status=%s%s",
            status,
            f" detail={detail}" if detail else "",
        )
        raise TokenError(f"Token refresh failed with status {status}")

    try:
        data = resp.json()
    except ValueError as exc:
        LOGGER.error("Invalid JSON in token response: %s", exc)
        raise TokenError("Invalid JSON in token response") from exc

    if not isinstance(data, dict):
        LOGGER.error("Unexpected token response shape: %s", type(data).__name__)
        raise TokenError("Unexpected token response shape")

    access_token = data.get("access_token")
    if not access_token:
        LOGGER.error("No access_token in token response")
        raise TokenError("No access_token in response")
    new_refresh_token = data.get("refresh_token") or refresh_token
    try:
        expires_at = int(data.get("expires_at", 0))
    except (TypeError, ValueError) as exc:
        raise TokenError("Invalid expires_at in token response") from exc
    LOGGER.info(
        "Token refresh ok access_token_len=%s refresh_token_changed=%s",
        len(access_token),
        new_refresh_token != refresh_token,
    )
    return TokenSet(
        access_token=str(access_token),
        refresh_token=str(new_refresh_token),
        expires_at=expires_at,
    )


class StoredTokenProvider:
    """Token provider backed by the durable key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        refresher: Callable[[str], TokenSet] = refresh_access_token,
        clock: Callable[[], float] = time.time,
        refresh_margin: int = TOKEN_REFRESH_MARGIN_SECONDS,
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._clock = clock
        self._refresh_margin = refresh_margin
        self._lock = threading.Lock()

    def _load(self) -> TokenSet | None:
        return load_record(self._store, TOKEN_STATE_KEY, _parse_tokens)

    @property
    def is_authenticated(self) -> bool:
        return self._load() is not None

    def save_tokens(self, tokens: TokenSet) -> None:
        save_record(self._store, TOKEN_STATE_KEY, tokens.to_record())
        LOGGER.info(
            "Stored Strava tokens access_token=%s expires_at=%s",
            _mask_tail(tokens.access_token),
            tokens.expires_at,
        )

    def disconnect(self) -> None:
        # The store has no delete; an empty object reads back as "no session".
        self._store.set(TOKEN_STATE_KEY, b"{}")
        LOGGER.info("Cleared stored Strava tokens")

    def valid_token(self) -> str:
        """Return a bearer token valid for at least the refresh margin.

        Raises:
            NotAuthenticatedError: No stored session, or the refresh failed.
        """

        with self._lock:
            tokens = self._load()
            if tokens is None:
                raise NotAuthenticatedError("No stored Strava session")
            if self._clock() < tokens.expires_at - self._refresh_margin:
                return tokens.access_token
            try:
                refreshed = self._refresher(tokens.refresh_token)
            except TokenError as exc:
                raise NotAuthenticatedError(str(exc)) from exc
            self.save_tokens(refreshed)
            return refreshed.access_token


__all__ = [
    "TokenError",
    "TokenProvider",
    "TokenSet",
    "refresh_access_token",
    "StoredTokenProvider",
]

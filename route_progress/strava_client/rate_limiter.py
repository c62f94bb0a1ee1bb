"""Rate limiting utilities shared across Strava API helpers."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Mapping

from ..config import RATE_LIMIT_NEAR_LIMIT_BUFFER, RATE_LIMIT_THROTTLE_SECONDS
from ..errors import RateLimitedError

__all__ = ["RateLimiter"]

LOGGER = logging.getLogger(__name__)

_USAGE_HEADERS = ("X-ReadRateLimit-Usage", "X-RateLimit-Usage")
_LIMIT_HEADERS = ("X-ReadRateLimit-Limit", "X-RateLimit-Limit")


def _first_header(headers: Mapping[str, object], names: tuple[str, ...]) -> object:
    for name in names:
        value = headers.get(name)
        if value:
            return value
    return None


class RateLimiter:
    """Track Strava's short-window usage and refuse requests while throttled.

    Strava reports usage in ``X-RateLimit-Usage`` / ``X-RateLimit-Limit``
    headers as ``"short,daily"`` pairs. A 429, or usage within
    ``near_limit_buffer`` of the short-window limit, arms a throttle. Requests
    made while it is armed fail fast with :class:`RateLimitedError` instead of
    sleeping, because a sync is never retried in place.
    """

    def __init__(
        self,
        near_limit_buffer: int = RATE_LIMIT_NEAR_LIMIT_BUFFER,
        throttle_seconds: float = RATE_LIMIT_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if near_limit_buffer < 0:
            raise ValueError("near_limit_buffer must be >= 0")
        self._lock = threading.Lock()
        self._near_limit_buffer = near_limit_buffer
        self._throttle_seconds = throttle_seconds
        self._clock = clock
        self._throttle_until: float = 0.0
        self._short_used: int | None = None
        self._short_limit: int | None = None

    def before_request(self) -> None:
        with self._lock:
            wait_for = self._throttle_until - self._clock()
        if wait_for > 0:
            raise RateLimitedError(
                f"Local throttle active for another {wait_for:.0f}s"
            )

    def after_response(
        self, headers: Mapping[str, object] | None, status_code: int | None
    ) -> bool:
        """Record a response; return ``True`` when the throttle was armed."""

        throttle = False
        short_used = short_limit = None
        if headers:
            usage = _first_header(headers, _USAGE_HEADERS)
            limit = _first_header(headers, _LIMIT_HEADERS)
            if usage and limit:
                try:
                    short_used = int(str(usage).split(",")[0])
                    short_limit = int(str(limit).split(",")[0])
                except (ValueError, TypeError) as exc:
                    short_used = short_limit = None
                    LOGGER.debug(
                        "Failed to parse rate limit headers usage=%s limit=%s: %s",
                        usage,
                        limit,
                        exc,
                    )
        if status_code == 429:
            throttle = True
            LOGGER.warning("Rate limit: 429. Throttling %ss.", self._throttle_seconds)
        elif (
            short_used is not None
            and short_limit is not None
            and short_used >= max(short_limit - self._near_limit_buffer, 0)
        ):
            throttle = True
            LOGGER.info(
                "Approaching short-window limit (%s/%s). Throttling %ss.",
                short_used,
                short_limit,
                self._throttle_seconds,
            )
        with self._lock:
            if short_used is not None:
                self._short_used = short_used
                self._short_limit = short_limit
            if throttle:
                self._throttle_until = self._clock() + self._throttle_seconds
        return throttle

    def reset(self) -> None:
        with self._lock:
            self._throttle_until = 0.0

    def snapshot(self) -> dict[str, float | int | None]:
        """Return current limiter stats (used by tests and diagnostics)."""

        with self._lock:
            return {
                "throttle_until": self._throttle_until,
                "short_used": self._short_used,
                "short_limit": self._short_limit,
            }

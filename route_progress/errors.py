"""Central error types used across the application."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base error for activity sync failures.

    Every subclass carries a ``category`` for programmatic handling and a
    ``user_message`` suitable for display. The exception text holds the
    technical detail used in logs.
    """

    category = "sync_failed"
    user_message = "Could not sync activities. Please try again."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class NotAuthenticatedError(SyncError):
    """Raised when no credential exists or the refresh could not produce one."""

    category = "not_authenticated"
    user_message = "Not connected to Strava."


class RateLimitedError(SyncError):
    """Raised on HTTP 429 or while the local rate limiter is throttling."""

    category = "rate_limited"
    user_message = "Strava rate limit reached. Try again in a few minutes."


class UnauthorizedError(SyncError):
    """Raised on HTTP 401; the credential was revoked server-side."""

    category = "unauthorized"
    user_message = "Your Strava session expired. Please reconnect."


class InvalidResponseError(SyncError):
    """Raised when Strava returns a payload that cannot be interpreted."""

    category = "invalid_response"
    user_message = "Received an invalid response from Strava."


class NetworkError(SyncError):
    """Raised on transport-level failures (DNS, connection, timeout)."""

    category = "network_error"
    user_message = "Could not reach Strava. Check your connection and try again."


class ProviderUnavailableError(SyncError):
    """Raised on HTTP 5xx responses."""

    category = "provider_unavailable"
    user_message = "Strava is unavailable right now. Please try again."


__all__ = [
    "SyncError",
    "NotAuthenticatedError",
    "RateLimitedError",
    "UnauthorizedError",
    "InvalidResponseError",
    "NetworkError",
    "ProviderUnavailableError",
]

"""Shared HTTP response helpers for Strava API interactions."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..errors import (
    InvalidResponseError,
    ProviderUnavailableError,
    RateLimitedError,
    SyncError,
    UnauthorizedError,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "classify_response",
    "extract_error",
]


def classify_response(
    response: requests.Response, context: str
) -> Optional[SyncError]:
    """Return the error for a non-success status, or ``None`` for 2xx/3xx."""

    status = response.status_code
    if status < 400:
        return None
    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status == 429:
        message = with_detail(f"{context} rate limited (429)")
        LOGGER.warning(message)
        return RateLimitedError(message)

    if status == 401:
        message = with_detail(f"{context} unauthorized (status {status})")
        LOGGER.warning(message)
        return UnauthorizedError(message)

    if 500 <= status < 600:
        message = with_detail(f"{context} server error {status}")
        LOGGER.warning(message)
        return ProviderUnavailableError(message)

    message = with_detail(f"{context} request failed (status {status})")
    LOGGER.error(message)
    return InvalidResponseError(message)


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return compact string with Strava error info (message + codes) if present."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if data is None:
        return _extract_error_text(resp)
    if not isinstance(data, dict):
        return None
    parts = _collect_error_parts(data)
    return " | ".join(parts) if parts else None


def _safe_json(resp: requests.Response) -> Optional[Any]:
    """Safely parse JSON; return None if parsing fails."""

    try:
        return resp.json()
    except ValueError as exc:
        LOGGER.debug(
            "Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc
        )
        return None


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    """Best-effort plain-text extraction when JSON parsing fails."""

    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed


def _collect_error_parts(data: Dict[str, Any]) -> List[str]:
    """Build error snippets from the standard Strava error response."""

    parts: List[str] = []
    message = data.get("message")
    if message:
        parts.append(str(message))
    errors = data.get("errors")
    if isinstance(errors, list):
        for err in errors:
            if not isinstance(err, dict):
                continue
            resource = err.get("resource")
            field = err.get("field")
            code = err.get("code")
            spec = "/".join(filter(None, (resource, field)))
            if code and spec:
                parts.append(f"{spec}:{code}")
            elif code:
                parts.append(str(code))
    return parts

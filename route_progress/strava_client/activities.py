"""Page fetcher for the authenticated athlete's activity list."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from ..config import ACTIVITY_PAGE_SIZE, REQUEST_TIMEOUT, STRAVA_BASE_URL
from ..errors import InvalidResponseError, NetworkError
from ..models import Activity
from ..utils import parse_iso_datetime
from .rate_limiter import RateLimiter
from .response_handling import classify_response
from .session import get_default_session

LOGGER = logging.getLogger(__name__)

__all__ = ["ActivityFeed", "StravaActivityFeed", "parse_activity"]


class ActivityFeed(Protocol):
    page_size: int

    def fetch_page(
        self, token: str, page: int, after: Optional[int] = None
    ) -> List[Activity]: ...


def parse_activity(payload: Mapping[str, Any]) -> Activity:
    """Build an :class:`Activity` from one Strava summary activity.

    Raises:
        InvalidResponseError: When ``id``, ``distance`` or ``start_date`` is
            missing or malformed.
    """

    try:
        activity_id = int(payload["id"])
        distance = float(payload["distance"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidResponseError(f"Malformed activity payload: {exc!r}") from exc
    start_time = parse_iso_datetime(payload.get("start_date"))
    if start_time is None:
        raise InvalidResponseError(
            f"Activity {activity_id} has invalid start_date {payload.get('start_date')!r}"
        )
    kind = payload.get("type") or payload.get("sport_type") or ""
    sport_type = payload.get("sport_type")
    return Activity(
        id=activity_id,
        kind=str(kind),
        distance_meters=max(0.0, distance),
        start_time=start_time,
        sport_type=str(sport_type) if sport_type else None,
    )


class StravaActivityFeed:
    """Fetch ``/athlete/activities`` pages without retrying.

    Every failure is mapped onto the sync error taxonomy so the caller can
    abort the whole sync on the first bad page.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        limiter: RateLimiter | None = None,
        base_url: str = STRAVA_BASE_URL,
        page_size: int = ACTIVITY_PAGE_SIZE,
        timeout: int = REQUEST_TIMEOUT,
    ) -> None:
        self._session = session or get_default_session()
        self._limiter = limiter or RateLimiter()
        self._url = f"{base_url}/athlete/activities"
        self.page_size = page_size
        self._timeout = timeout

    def fetch_page(
        self, token: str, page: int, after: Optional[int] = None
    ) -> List[Activity]:
        params: Dict[str, Any] = {"per_page": self.page_size, "page": page}
        if after is not None:
            params["after"] = int(after)
        context = f"activities page={page}"

        self._limiter.before_request()
        try:
            resp = self._session.get(
                self._url,
                headers={"Authorization": f"Bearer {token}"},
                params=params,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            self._limiter.after_response(None, None)
            LOGGER.warning("%s network error: %s", context, exc)
            raise NetworkError(f"{context}: {exc.__class__.__name__}: {exc}") from exc
        self._limiter.after_response(resp.headers, resp.status_code)

        error = classify_response(resp, context)
        if error is not None:
            raise error

        content_type = str(resp.headers.get("Content-Type", "")).lower()
        if "text/html" in content_type:
            raise InvalidResponseError(f"{context} returned an HTML page")
        try:
            data = resp.json()
        except ValueError as exc:
            raise InvalidResponseError(f"{context} returned non-JSON body") from exc
        if not isinstance(data, list):
            raise InvalidResponseError(
                f"{context} unexpected JSON shape type={type(data).__name__}"
            )
        activities: List[Activity] = []
        for item in data:
            if not isinstance(item, Mapping):
                raise InvalidResponseError(
                    f"{context} item has type {type(item).__name__}"
                )
            activities.append(parse_activity(item))
        LOGGER.debug(
            "%s after=%s returned %d activities", context, after, len(activities)
        )
        return activities

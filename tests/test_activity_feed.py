import json

import pytest
import requests

from route_progress.errors import (
    InvalidResponseError,
    NetworkError,
    ProviderUnavailableError,
    RateLimitedError,
    UnauthorizedError,
)
from route_progress.strava_client import (
    RateLimiter,
    StravaActivityFeed,
    classify_response,
    extract_error,
    parse_activity,
)


class FakeResp:
    def __init__(self, status_code=200, data=None, text=None, headers=None):
        self.status_code = status_code
        self._data = data
        self._text = text
        self.headers = headers or {"Content-Type": "application/json"}
        self.url = "https://example.test/athlete/activities"

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data

    @property
    def text(self):
        if self._text is not None:
            return self._text
        return json.dumps(self._data)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _payload(activity_id, distance=5000.0, kind="Run"):
    return {
        "id": activity_id,
        "type": kind,
        "sport_type": kind,
        "distance": distance,
        "start_date": "2025-03-01T07:00:00Z",
    }


def _feed(session, limiter=None):
    return StravaActivityFeed(
        session=session,
        limiter=limiter or RateLimiter(clock=lambda: 1000.0),
        base_url="https://example.test",
        page_size=200,
        timeout=7,
    )


def test_fetch_page_parses_activities_and_sends_params():
    session = FakeSession(FakeResp(200, [_payload(1), _payload(2, 1609.34, "Ride")]))
    activities = _feed(session).fetch_page("tok", 3, after=1_700_000_000)

    assert [a.id for a in activities] == [1, 2]
    assert activities[1].kind == "Ride"
    assert activities[0].start_time.tzinfo is not None
    sent = session.requests[0]
    assert sent["url"] == "https://example.test/athlete/activities"
    assert sent["headers"] == {"Authorization": "Bearer tok"}
    assert sent["params"] == {"per_page": 200, "page": 3, "after": 1_700_000_000}
    assert sent["timeout"] == 7


def test_fetch_page_without_cursor_omits_after():
    session = FakeSession(FakeResp(200, []))
    assert _feed(session).fetch_page("tok", 1) == []
    assert "after" not in session.requests[0]["params"]


@pytest.mark.parametrize(
    "status, error_type",
    [
        (401, UnauthorizedError),
        (403, InvalidResponseError),
        (429, RateLimitedError),
        (500, ProviderUnavailableError),
        (503, ProviderUnavailableError),
        (404, InvalidResponseError),
    ],
)
def test_fetch_page_maps_status_codes(status, error_type):
    session = FakeSession(FakeResp(status, {"message": "nope"}))
    with pytest.raises(error_type):
        _feed(session).fetch_page("tok", 1)


def test_429_arms_the_limiter_for_later_requests():
    limiter = RateLimiter(throttle_seconds=60, clock=lambda: 1000.0)
    session = FakeSession(FakeResp(429, {"message": "Rate Limit Exceeded"}))
    feed = _feed(session, limiter)
    with pytest.raises(RateLimitedError):
        feed.fetch_page("tok", 1)
    with pytest.raises(RateLimitedError):
        feed.fetch_page("tok", 2)
    # The second call never reached the session.
    assert len(session.requests) == 1


def test_transport_error_becomes_network_error():
    session = FakeSession(error=requests.ConnectionError("dns failure"))
    with pytest.raises(NetworkError) as excinfo:
        _feed(session).fetch_page("tok", 1)
    assert excinfo.value.category == "network_error"
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_html_body_is_invalid_response():
    resp = FakeResp(200, ValueError("no json"), text="<html></html>", headers={"Content-Type": "text/html; charset=utf-8"})
    with pytest.raises(InvalidResponseError):
        _feed(FakeSession(resp)).fetch_page("tok", 1)


def test_non_json_body_is_invalid_response():
    resp = FakeResp(200, ValueError("bad json"), text="garbage")
    with pytest.raises(InvalidResponseError):
        _feed(FakeSession(resp)).fetch_page("tok", 1)


def test_non_list_payload_is_invalid_response():
    with pytest.raises(InvalidResponseError):
        _feed(FakeSession(FakeResp(200, {"activities": []}))).fetch_page("tok", 1)


def test_non_mapping_item_is_invalid_response():
    with pytest.raises(InvalidResponseError):
        _feed(FakeSession(FakeResp(200, [_payload(1), "oops"]))).fetch_page("tok", 1)


def test_parse_activity_requires_core_fields():
    with pytest.raises(InvalidResponseError):
        parse_activity({"id": 1, "start_date": "2025-03-01T07:00:00Z"})
    with pytest.raises(InvalidResponseError):
        parse_activity({"id": 1, "distance": 10.0, "start_date": "yesterday"})
    with pytest.raises(InvalidResponseError):
        parse_activity({"distance": 10.0, "start_date": "2025-03-01T07:00:00Z"})


def test_parse_activity_falls_back_to_sport_type_and_clamps_distance():
    activity = parse_activity(
        {
            "id": "42",
            "sport_type": "TrailRun",
            "distance": -3,
            "start_date": "2025-03-01T07:00:00+02:00",
        }
    )
    assert activity.id == 42
    assert activity.kind == "TrailRun"
    assert activity.sport_type == "TrailRun"
    assert activity.distance_meters == 0.0
    assert activity.start_time.utcoffset().total_seconds() == 0
    assert activity.start_time.hour == 5


def test_classify_response_success_is_none():
    assert classify_response(FakeResp(200, []), "ctx") is None
    assert classify_response(FakeResp(302, None, text=""), "ctx") is None


def test_classify_response_includes_error_detail():
    resp = FakeResp(
        400,
        {
            "message": "Bad Request",
            "errors": [{"resource": "Activity", "field": "after", "code": "invalid"}],
        },
    )
    error = classify_response(resp, "activities page=1")
    assert isinstance(error, InvalidResponseError)
    assert "Bad Request" in str(error)
    assert "Activity/after:invalid" in str(error)


def test_extract_error_handles_plain_text_and_none():
    assert extract_error(None) is None
    resp = FakeResp(502, ValueError("not json"), text="  Bad gateway  ")
    assert extract_error(resp) == "Bad gateway"
    long_resp = FakeResp(502, ValueError("not json"), text="x" * 400)
    assert extract_error(long_resp).endswith("...")
    assert len(extract_error(long_resp)) == 300


def test_forbidden_is_not_reported_as_expired_session():
    error = classify_response(FakeResp(403, {"message": "Forbidden"}), "activities page=1")
    assert isinstance(error, InvalidResponseError)
    assert not isinstance(error, UnauthorizedError)
    assert error.category == "invalid_response"

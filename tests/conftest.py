"""Global pytest fixtures & helpers.

Adds project root to path and provides fake collaborators (activity feed,
token provider, clock) shared by the sync, store and engine tests.
"""
from __future__ import annotations

import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from route_progress.catalog import RouteCatalog
from route_progress.models import Activity, Coordinate, Landmark, Route
from route_progress.storage import MemoryStore
from route_progress.units import METERS_PER_MILE

BASE_TIME = datetime(2025, 3, 1, 7, 0, tzinfo=timezone.utc)


# --- Factory helpers -------------------------------------------------
def make_activity(activity_id, miles=3.0, *, days=0, kind="Run", sport_type=None):
    return Activity(
        id=activity_id,
        kind=kind,
        distance_meters=miles * METERS_PER_MILE,
        start_time=BASE_TIME + timedelta(days=days, minutes=activity_id % 1000),
        sport_type=sport_type,
    )


def make_route(route_id, total, *, landmarks=(), path=None):
    path = path or (Coordinate(0.0, 0.0), Coordinate(0.0, 0.5), Coordinate(0.0, 1.0))
    return Route(
        id=route_id,
        name=route_id.title(),
        origin=f"{route_id} start",
        destination=f"{route_id} finish",
        path=tuple(path),
        nominal_total_distance=total,
        landmarks=tuple(landmarks),
    )


def make_landmark(name, miles, lat=0.0, lon=0.0, region="XX"):
    return Landmark(
        id=name.lower(),
        name=name,
        region=region,
        coordinate=Coordinate(lat, lon),
        distance_from_start=miles,
    )


class FakeFeed:
    """In-memory activity feed paging like Strava's /athlete/activities.

    Without ``after`` activities come newest first; with ``after`` only
    activities starting later are returned, oldest first. ``failures`` maps a
    0-based call index to the exception raised by that call.
    """

    def __init__(self, activities=(), page_size=200, failures=None):
        self.activities: List[Activity] = list(activities)
        self.page_size = page_size
        self.failures: Dict[int, Exception] = dict(failures or {})
        self.calls: List[tuple] = []

    def fetch_page(self, token, page, after=None):
        index = len(self.calls)
        self.calls.append((page, after))
        if index in self.failures:
            raise self.failures[index]
        if after is None:
            items = sorted(self.activities, key=lambda a: a.start_time, reverse=True)
        else:
            items = sorted(
                (a for a in self.activities if a.start_time.timestamp() > after),
                key=lambda a: a.start_time,
            )
        start = (page - 1) * self.page_size
        return items[start : start + self.page_size]


class BlockingFeed(FakeFeed):
    """Feed whose first call blocks until ``release`` is set."""

    def __init__(self, activities=()):
        super().__init__(activities)
        self.started = threading.Event()
        self.release = threading.Event()

    def fetch_page(self, token, page, after=None):
        if not self.started.is_set():
            self.started.set()
            assert self.release.wait(5), "blocking feed was never released"
        return super().fetch_page(token, page, after)


class FakeTokens:
    def __init__(self, token="token-abc", error: Optional[Exception] = None):
        self.token = token
        self.error = error
        self.calls = 0

    def valid_token(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.token


class FakeClock:
    def __init__(self, now=None):
        self.now = now if now is not None else BASE_TIME.timestamp() + 30 * 86400

    def __call__(self):
        return self.now


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def fake_tokens():
    return FakeTokens()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def two_route_catalog():
    route_a = make_route("route-a", 100)
    route_b = make_route("route-b", 50)
    return RouteCatalog([route_a, route_b], default_route_id="route-a")

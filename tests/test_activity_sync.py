import json
import logging
import threading
from dataclasses import replace

import pytest

from route_progress.config import ACTIVITY_SYNC_STATE_KEY
from route_progress.errors import (
    InvalidResponseError,
    NetworkError,
    NotAuthenticatedError,
    SyncError,
)
from route_progress.models import ActivitySyncState
from route_progress.services import ActivitySyncEngine

from conftest import BlockingFeed, FakeClock, FakeFeed, FakeTokens, make_activity

SAFETY_WINDOW = 7200


def _engine(store, feed, *, tokens=None, clock=None, sleeps=None, **options):
    options.setdefault("page_delay", 0.3)
    options.setdefault("safety_window", SAFETY_WINDOW)
    options.setdefault("max_pages", None)
    return ActivitySyncEngine(
        store,
        tokens or FakeTokens(),
        feed,
        clock=clock or FakeClock(),
        sleep=sleeps.append if sleeps is not None else (lambda _seconds: None),
        **options,
    )


def _history(count, miles=2.0):
    return [make_activity(i, miles) for i in range(1, count + 1)]


def test_full_sync_pages_until_short_page(memory_store, sleeps, fake_clock):
    feed = FakeFeed(_history(200, 3.0) + [make_activity(i, 1.0) for i in range(201, 241)])
    engine = _engine(memory_store, feed, sleeps=sleeps, clock=fake_clock)

    result = engine.sync()

    assert result.ok
    assert result.full_sync is True
    assert result.gain_miles == 0.0
    assert result.new_activity_count == 240
    state = engine.state
    assert state.lifetime_total_miles == pytest.approx(200 * 3.0 + 40 * 1.0)
    assert state.lifetime_activity_count == 240
    assert len(state.known_activity_ids) == 240
    assert state.has_synced is True
    assert state.last_synced_at == int(fake_clock.now)
    # Two pages for the pass, then one for the latest-activity refresh.
    assert feed.calls == [(1, None), (2, None), (1, None)]
    assert sleeps == [0.3]


def test_full_sync_persists_state(memory_store):
    engine = _engine(memory_store, FakeFeed(_history(3)))
    engine.sync()
    reloaded = _engine(memory_store, FakeFeed())
    assert reloaded.state == engine.state
    assert memory_store.get(ACTIVITY_SYNC_STATE_KEY) is not None


def test_only_counted_activity_types_are_summed(memory_store):
    feed = FakeFeed(
        [
            make_activity(1, 3.0),
            make_activity(2, 20.0, kind="Ride"),
            make_activity(3, 2.0, kind="VirtualRun"),
            make_activity(4, 5.0, kind="Run", sport_type="TrailRun"),
            make_activity(5, 1.0, kind="Walk"),
        ]
    )
    engine = _engine(memory_store, feed)
    engine.sync()
    assert engine.lifetime_total_miles == pytest.approx(10.0)
    assert engine.state.known_activity_ids == frozenset({1, 3, 4})


def test_latest_activity_is_newest_counted_run(memory_store):
    feed = FakeFeed(
        [
            make_activity(1, 3.0),
            make_activity(2, 5.0),
            make_activity(3, 40.0, kind="Ride"),
        ]
    )
    engine = _engine(memory_store, feed)
    engine.sync()
    assert engine.state.latest_activity_miles == pytest.approx(5.0)


def test_duplicate_ids_in_one_pass_count_once(memory_store):
    run = make_activity(7, 4.0)
    repeat = replace(make_activity(1007, 4.0), id=7)
    engine = _engine(memory_store, FakeFeed([run, repeat]))
    engine.sync()
    assert engine.lifetime_total_miles == pytest.approx(4.0)
    assert engine.state.lifetime_activity_count == 1


def test_incremental_sync_uses_cursor_and_reports_gain(memory_store, fake_clock):
    feed = FakeFeed(_history(5))
    engine = _engine(memory_store, feed, clock=fake_clock)
    engine.sync()
    first_synced_at = engine.state.last_synced_at

    feed.activities.append(make_activity(500, 4.0, days=30))
    fake_clock.now += 86400
    feed.calls.clear()
    result = engine.sync()

    assert result.ok
    assert result.full_sync is False
    assert result.new_activity_count == 1
    assert result.gain_miles == pytest.approx(4.0)
    assert feed.calls[0] == (1, first_synced_at - SAFETY_WINDOW)
    assert engine.lifetime_total_miles == pytest.approx(5 * 2.0 + 4.0)
    assert engine.state.latest_activity_miles == pytest.approx(4.0)
    assert engine.state.last_synced_at == int(fake_clock.now)


def test_repeated_sync_is_idempotent(memory_store, fake_clock):
    # The recent run sits inside the safety window, so every sync sees it again.
    feed = FakeFeed(_history(5) + [make_activity(500, 4.0, days=30)])
    engine = _engine(memory_store, feed, clock=fake_clock)
    engine.sync()
    before = engine.state

    for _ in range(3):
        result = engine.sync()
        assert result.ok
        assert result.gain_miles == 0.0
        assert result.new_activity_count == 0

    assert engine.lifetime_total_miles == pytest.approx(before.lifetime_total_miles)
    assert engine.state.known_activity_ids == before.known_activity_ids


def test_last_synced_at_never_moves_backwards(memory_store, fake_clock):
    engine = _engine(memory_store, FakeFeed(_history(2)), clock=fake_clock)
    engine.sync()
    synced_at = engine.state.last_synced_at
    fake_clock.now -= 3600
    engine.sync()
    assert engine.state.last_synced_at == synced_at


def test_first_sync_gain_is_zero_even_with_history(memory_store):
    engine = _engine(memory_store, FakeFeed(_history(10, 5.0)))
    result = engine.sync()
    assert result.gain_miles == 0.0
    assert engine.lifetime_total_miles == pytest.approx(50.0)


def test_failed_incremental_sync_leaves_state_untouched(memory_store, fake_clock):
    feed = FakeFeed(_history(240), failures={4: NetworkError("connection reset")})
    engine = _engine(memory_store, feed, clock=fake_clock)
    assert engine.sync().ok
    stored = memory_store.get(ACTIVITY_SYNC_STATE_KEY)
    before = engine.state

    feed.activities.extend(make_activity(i, 1.0, days=30) for i in range(300, 700))
    fake_clock.now += 600
    result = engine.sync()

    assert not result.ok
    assert isinstance(result.error, NetworkError)
    assert result.error.category == "network_error"
    assert result.gain_miles == 0.0
    assert engine.state == before
    assert memory_store.get(ACTIVITY_SYNC_STATE_KEY) == stored


def test_failed_full_sync_writes_nothing(memory_store):
    feed = FakeFeed(_history(450), failures={1: NetworkError("timeout")})
    engine = _engine(memory_store, feed)
    result = engine.sync()
    assert result.error is not None
    assert result.full_sync is True
    assert memory_store.get(ACTIVITY_SYNC_STATE_KEY) is None
    assert engine.state == ActivitySyncState()


def test_latest_refresh_failure_is_ignored(memory_store):
    feed = FakeFeed(_history(40, 2.0), failures={1: NetworkError("flaky")})
    engine = _engine(memory_store, feed)
    result = engine.sync()
    assert result.ok
    assert engine.lifetime_total_miles == pytest.approx(80.0)
    assert engine.state.latest_activity_miles == pytest.approx(2.0)


def test_not_authenticated_returns_error_without_fetching(memory_store):
    feed = FakeFeed(_history(3))
    tokens = FakeTokens(error=NotAuthenticatedError("no session"))
    engine = _engine(memory_store, feed, tokens=tokens)
    result = engine.sync()
    assert result.error.category == "not_authenticated"
    assert result.error.user_message == "Not connected to Strava."
    assert feed.calls == []
    assert memory_store.get(ACTIVITY_SYNC_STATE_KEY) is None


def test_unexpected_exception_is_wrapped(memory_store, caplog):
    caplog.set_level(logging.ERROR)
    feed = FakeFeed(_history(3), failures={0: KeyError("distance")})
    engine = _engine(memory_store, feed)
    result = engine.sync()
    assert type(result.error) is SyncError
    assert isinstance(result.error.__cause__, KeyError)
    assert "Sync failed unexpectedly" in caplog.text


def test_concurrent_sync_is_skipped(memory_store):
    feed = BlockingFeed(_history(3))
    engine = _engine(memory_store, feed)
    results = []
    worker = threading.Thread(target=lambda: results.append(engine.sync()))
    worker.start()
    assert feed.started.wait(2)

    assert engine.is_syncing
    skipped = engine.sync()
    assert skipped.skipped is True
    assert not skipped.ok
    assert skipped.error is None

    feed.release.set()
    worker.join(timeout=5)
    assert results and results[0].ok
    assert engine.state.lifetime_activity_count == 3


def test_page_cap_fails_sync_without_committing(memory_store, caplog, fake_clock):
    caplog.set_level(logging.WARNING)
    feed = FakeFeed(_history(450))
    engine = _engine(memory_store, feed, max_pages=1, clock=fake_clock)

    for _ in range(3):
        result = engine.sync()
        assert isinstance(result.error, InvalidResponseError)
        assert result.full_sync is True
        fake_clock.now += 3600

    assert "page cap" in caplog.text
    assert engine.state == ActivitySyncState()
    assert memory_store.get(ACTIVITY_SYNC_STATE_KEY) is None


def test_page_cap_allows_feed_that_ends_within_cap(memory_store):
    feed = FakeFeed(_history(450))
    engine = _engine(memory_store, feed, max_pages=3)
    assert engine.sync().ok
    assert engine.state.lifetime_activity_count == 450


def test_debug_reset_forces_full_sync(memory_store):
    feed = FakeFeed(_history(4))
    engine = _engine(memory_store, feed)
    engine.sync()
    engine.debug_reset()
    assert engine.state == ActivitySyncState()
    assert ActivitySyncState.from_record(
        json.loads(memory_store.get(ACTIVITY_SYNC_STATE_KEY))
    ) == ActivitySyncState()
    result = engine.sync()
    assert result.full_sync is True
    assert engine.state.lifetime_activity_count == 4

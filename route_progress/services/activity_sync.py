"""Activity sync engine.

Keeps lifetime running distance in step with the Strava activity feed. The
first sync pages through the whole feed; later syncs page from a cursor a
little before the previous sync and skip activity ids already counted. A sync
either commits a complete new state or leaves the previous one untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Set

from ..activity_types import ActivityFilter, counted_activity_filter
from ..auth import TokenProvider
from ..config import (
    ACTIVITY_SYNC_STATE_KEY,
    SYNC_MAX_PAGES,
    SYNC_PAGE_DELAY_SECONDS,
    SYNC_SAFETY_WINDOW_SECONDS,
)
from ..errors import InvalidResponseError, SyncError
from ..models import Activity, ActivitySyncState, SyncResult
from ..storage import KeyValueStore, load_record, save_record
from ..strava_client.activities import ActivityFeed
from ..units import meters_to_miles


@dataclass
class _PassTotals:
    """Accumulators for one sync pass; discarded if the pass fails."""

    miles: float = 0.0
    count: int = 0
    ids: Set[int] = field(default_factory=set)
    newest: Optional[Activity] = None

    def add(self, activity: Activity) -> None:
        self.miles += meters_to_miles(activity.distance_meters)
        self.count += 1
        self.ids.add(activity.id)
        if self.newest is None or activity.start_time > self.newest.start_time:
            self.newest = activity


def _newest(activities: List[Activity]) -> Optional[Activity]:
    newest: Optional[Activity] = None
    for activity in activities:
        if newest is None or activity.start_time > newest.start_time:
            newest = activity
    return newest


class ActivitySyncEngine:
    def __init__(
        self,
        store: KeyValueStore,
        token_provider: TokenProvider,
        feed: ActivityFeed,
        *,
        activity_filter: ActivityFilter | None = None,
        page_delay: float = SYNC_PAGE_DELAY_SECONDS,
        safety_window: int = SYNC_SAFETY_WINDOW_SECONDS,
        max_pages: int | None = SYNC_MAX_PAGES,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._token_provider = token_provider
        self._feed = feed
        self._filter = activity_filter or counted_activity_filter()
        self._page_delay = page_delay
        self._safety_window = safety_window
        self._max_pages = max_pages
        self._clock = clock
        self._sleep = sleep
        self._sync_lock = threading.Lock()
        self._log = logging.getLogger(self.__class__.__name__)
        self._state = (
            load_record(self._store, ACTIVITY_SYNC_STATE_KEY, ActivitySyncState.from_record)
            or ActivitySyncState()
        )

    @property
    def state(self) -> ActivitySyncState:
        return self._state

    @property
    def lifetime_total_miles(self) -> float:
        return self._state.lifetime_total_miles

    @property
    def is_syncing(self) -> bool:
        return self._sync_lock.locked()

    def sync(self) -> SyncResult:
        """Fold new activities into the lifetime totals.

        Returns immediately with ``skipped=True`` when another sync is running.
        Errors never propagate: they are returned on the result with a gain
        of 0 and the previous state kept.
        """

        if not self._sync_lock.acquire(blocking=False):
            self._log.info("Sync already in progress; ignoring request")
            return SyncResult(skipped=True)
        try:
            return self._run_sync()
        finally:
            self._sync_lock.release()

    def _run_sync(self) -> SyncResult:
        before = self._state
        full_sync = not (before.has_synced and before.known_activity_ids)
        started = time.monotonic()
        try:
            token = self._token_provider.valid_token()
            if full_sync:
                after = self._full_sync(token)
            else:
                after = self._incremental_sync(token, before)
            latest = self._safe_latest_activity_miles(token)
            if latest is not None:
                after = replace(after, latest_activity_miles=latest)
            after = replace(
                after,
                has_synced=True,
                last_synced_at=max(before.last_synced_at, int(self._clock())),
            )
            self._commit(after)
        except SyncError as exc:
            self._log.error(
                "Sync failed category=%s full=%s: %s", exc.category, full_sync, exc
            )
            return SyncResult(error=exc, full_sync=full_sync)
        except Exception as exc:
            self._log.error("Sync failed unexpectedly: %s", exc, exc_info=True)
            error = SyncError(f"Unexpected sync failure: {exc}")
            error.__cause__ = exc
            return SyncResult(error=error, full_sync=full_sync)

        gain = after.lifetime_total_miles - before.lifetime_total_miles
        if not before.has_synced:
            gain = 0.0
        new_count = after.lifetime_activity_count - before.lifetime_activity_count
        self._log.info(
            "Sync complete full=%s new_activities=%d gain=%.2fmi total=%.2fmi (%.1fs)",
            full_sync,
            new_count,
            gain,
            after.lifetime_total_miles,
            time.monotonic() - started,
        )
        return SyncResult(
            gain_miles=max(0.0, gain),
            full_sync=full_sync,
            new_activity_count=new_count,
        )

    def _commit(self, state: ActivitySyncState) -> None:
        save_record(self._store, ACTIVITY_SYNC_STATE_KEY, state.to_record())
        self._state = state

    def _collect(
        self,
        token: str,
        totals: _PassTotals,
        *,
        after: Optional[int],
        known_ids: frozenset[int] = frozenset(),
    ) -> None:
        """Page through the feed, adding unseen counted activities to ``totals``."""

        page = 1
        while True:
            activities = self._feed.fetch_page(token, page, after)
            if not activities:
                break
            for activity in activities:
                if not self._filter(activity):
                    continue
                if activity.id in known_ids or activity.id in totals.ids:
                    continue
                totals.add(activity)
            self._log.debug(
                "Page %d after=%s: %d activities, %d counted so far",
                page,
                after,
                len(activities),
                totals.count,
            )
            if len(activities) < self._feed.page_size:
                break
            if self._max_pages is not None and page >= self._max_pages:
                # A truncated pass must never be committed.
                self._log.warning("Aborting sync at page cap %d", self._max_pages)
                raise InvalidResponseError(
                    f"Page cap {self._max_pages} reached before the feed ended"
                )
            self._sleep(self._page_delay)
            page += 1

    def _full_sync(self, token: str) -> ActivitySyncState:
        self._log.info("Starting full activity sync")
        totals = _PassTotals()
        self._collect(token, totals, after=None)
        return ActivitySyncState(
            lifetime_total_miles=totals.miles,
            lifetime_activity_count=totals.count,
            latest_activity_miles=(
                meters_to_miles(totals.newest.distance_meters) if totals.newest else 0.0
            ),
            known_activity_ids=frozenset(totals.ids),
        )

    def _incremental_sync(
        self, token: str, before: ActivitySyncState
    ) -> ActivitySyncState:
        cursor = max(0, before.last_synced_at - self._safety_window)
        self._log.info("Starting incremental activity sync after=%d", cursor)
        totals = _PassTotals()
        self._collect(token, totals, after=cursor, known_ids=before.known_activity_ids)
        if not totals.count:
            return before
        return replace(
            before,
            lifetime_total_miles=before.lifetime_total_miles + totals.miles,
            lifetime_activity_count=before.lifetime_activity_count + totals.count,
            latest_activity_miles=meters_to_miles(totals.newest.distance_meters)
            if totals.newest
            else before.latest_activity_miles,
            known_activity_ids=before.known_activity_ids | totals.ids,
        )

    def _safe_latest_activity_miles(self, token: str) -> Optional[float]:
        """Distance of the newest counted activity on the first page, if any.

        Keeps the "last run" figure right even when the incremental window
        found nothing new. Failures are ignored.
        """

        try:
            activities = self._feed.fetch_page(token, 1, None)
        except Exception as exc:
            self._log.debug("Latest activity refresh failed: %s", exc)
            return None
        newest = _newest([activity for activity in activities if self._filter(activity)])
        if newest is None:
            return None
        return meters_to_miles(newest.distance_meters)

    def debug_reset(self) -> None:
        """Test hook: forget all synced activities so the next sync is a full sync."""

        with self._sync_lock:
            self._commit(ActivitySyncState())
        self._log.warning("Debug reset of activity sync state")


__all__ = ["ActivitySyncEngine"]

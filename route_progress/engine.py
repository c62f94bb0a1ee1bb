"""Consumer-facing facade over the route progress services."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Any, List, Optional

from .auth import StoredTokenProvider, TokenProvider
from .catalog import RouteCatalog
from .config import NEAREST_POI_LIMIT
from .models import Landmark, Route, RouteProgressView, SyncResult
from .services import (
    ActivitySyncEngine,
    RouteProgressStore,
    nearest_points_of_interest,
    project_progress,
)
from .storage import KeyValueStore
from .strava_client.activities import ActivityFeed, StravaActivityFeed


class RouteProgressEngine:
    """Wire the route store, sync engine and projector around one durable store.

    ``sync_options`` are forwarded to :class:`ActivitySyncEngine` (filter,
    delays, clock) and exist mainly for tests.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        token_provider: TokenProvider | None = None,
        feed: ActivityFeed | None = None,
        catalog: RouteCatalog | None = None,
        **sync_options: Any,
    ) -> None:
        self._log = logging.getLogger(self.__class__.__name__)
        self._routes = RouteProgressStore(store, catalog)
        self._sync = ActivitySyncEngine(
            store,
            token_provider or StoredTokenProvider(store),
            feed or StravaActivityFeed(),
            **sync_options,
        )
        self._executor: ThreadPoolExecutor | None = None
        self._pending: "Future[SyncResult] | None" = None
        self._executor_lock = threading.Lock()

    @property
    def route_store(self) -> RouteProgressStore:
        return self._routes

    @property
    def sync_engine(self) -> ActivitySyncEngine:
        return self._sync

    @property
    def lifetime_total_miles(self) -> float:
        return self._sync.lifetime_total_miles

    @property
    def completed_route_ids(self) -> frozenset[str]:
        return self._routes.completed_route_ids

    def routes(self) -> List[Route]:
        return self._routes.catalog.all()

    def active_route(self) -> Optional[Route]:
        return self._routes.active_route

    def progress(self) -> RouteProgressView:
        return project_progress(
            self._routes.state, self._sync.state, self._routes.catalog
        )

    def switch_route(self, route_id: str) -> Route:
        return self._routes.switch_route(route_id, self._sync.lifetime_total_miles)

    def nearest_points_of_interest(self, limit: int = NEAREST_POI_LIMIT) -> List[Landmark]:
        route = self._routes.active_route
        if route is None:
            return []
        progress = self._routes.progress_miles(self._sync.lifetime_total_miles)
        return nearest_points_of_interest(route, progress, limit)

    def sync(self) -> SyncResult:
        """Run one activity sync and record passive route completion."""

        result = self._sync.sync()
        if not result.ok:
            return result
        route_id = self._routes.active_route_id
        total = self._sync.lifetime_total_miles
        if self._routes.is_route_complete(total) and not self._routes.is_completed(
            route_id
        ):
            self._routes.mark_complete(route_id)
            self._log.info("Route %s completed by this sync", route_id)
            result = replace(result, completed_route_id=route_id)
        return result

    def sync_async(self) -> "Future[SyncResult]":
        """Run :meth:`sync` on the engine's single background worker.

        While a sync is queued or running the request is not queued behind it;
        the returned future is already resolved with ``skipped=True``.
        """

        with self._executor_lock:
            pending = self._pending
            if (pending is not None and not pending.done()) or self._sync.is_syncing:
                self._log.info("Sync already in progress; ignoring async request")
                skipped: "Future[SyncResult]" = Future()
                skipped.set_result(SyncResult(skipped=True))
                return skipped
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="activity-sync"
                )
            self._pending = self._executor.submit(self.sync)
            return self._pending

    def close(self) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
            self._pending = None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> "RouteProgressEngine":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


__all__ = ["RouteProgressEngine"]

"""Persisted route progress: active route, starting baseline, completed routes.

Progress on the active route is ``lifetime total - starting baseline``. The
baseline is captured when a route is activated, so switching routes only banks
miles run after the switch and never credits a late-joined route with miles
already spent on another one.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ..catalog import DEFAULT_CATALOG, RouteCatalog
from ..config import ROUTE_PROGRESS_STATE_KEY
from ..models import Route, RouteProgressState
from ..storage import KeyValueStore, load_record, save_record


class RouteProgressStore:
    def __init__(
        self,
        store: KeyValueStore,
        catalog: RouteCatalog | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog or DEFAULT_CATALOG
        self._log = logging.getLogger(self.__class__.__name__)
        self._state = self._load()

    def _load(self) -> RouteProgressState:
        persisted = load_record(
            self._store, ROUTE_PROGRESS_STATE_KEY, RouteProgressState.from_record
        )
        if persisted is None:
            state = RouteProgressState(active_route_id=self._catalog.default_route_id)
            self._log.info(
                "Initialising route progress with default route=%s",
                state.active_route_id,
            )
            self._write(state)
            return state

        state = persisted
        if state.active_route_id not in self._catalog:
            self._log.warning(
                "Persisted route id=%s is no longer in the catalog; using %s",
                state.active_route_id,
                self._catalog.default_route_id,
            )
            state = replace(state, active_route_id=self._catalog.default_route_id)
        known_completed = frozenset(
            route_id for route_id in state.completed_route_ids if route_id in self._catalog
        )
        if known_completed != state.completed_route_ids:
            state = replace(state, completed_route_ids=known_completed)
        if state != persisted:
            self._write(state)
        return state

    def _write(self, state: RouteProgressState) -> None:
        save_record(self._store, ROUTE_PROGRESS_STATE_KEY, state.to_record())
        self._state = state

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> RouteProgressState:
        return self._state

    @property
    def catalog(self) -> RouteCatalog:
        return self._catalog

    @property
    def active_route_id(self) -> str:
        return self._state.active_route_id

    @property
    def active_route(self) -> Optional[Route]:
        return self._catalog.lookup(self._state.active_route_id)

    @property
    def starting_baseline(self) -> float:
        return self._state.starting_baseline

    @property
    def completed_route_ids(self) -> frozenset[str]:
        return self._state.completed_route_ids

    def progress_miles(self, total_miles: float) -> float:
        """Miles run on the active route; never negative."""

        return max(0.0, total_miles - self._state.starting_baseline)

    def is_route_complete(self, total_miles: float) -> bool:
        route = self.active_route
        if route is None:
            return False
        return self.progress_miles(total_miles) >= route.nominal_total_distance

    def is_completed(self, route_id: str) -> bool:
        return route_id in self._state.completed_route_ids

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def switch_route(self, route_id: str, current_total_miles: float) -> Route:
        """Activate ``route_id`` with the baseline set to ``current_total_miles``.

        The outgoing route is recorded as completed when its progress against
        the old baseline already reached its nominal distance. Unknown ids
        resolve to the default route.
        """

        new_route = self._catalog.resolve(route_id)
        completed = self._state.completed_route_ids
        outgoing = self.active_route
        if outgoing is not None and self.is_route_complete(current_total_miles):
            completed = completed | {outgoing.id}
            self._log.info("Route %s completed before switching", outgoing.id)
        self._write(
            RouteProgressState(
                active_route_id=new_route.id,
                starting_baseline=current_total_miles,
                completed_route_ids=completed,
            )
        )
        self._log.info(
            "Switched active route to %s baseline=%.2f",
            new_route.id,
            current_total_miles,
        )
        return new_route

    def mark_complete(self, route_id: str | None = None) -> None:
        """Idempotently record ``route_id`` (default: the active route) as completed."""

        target = route_id or self._state.active_route_id
        if target in self._state.completed_route_ids:
            return
        self._write(
            replace(
                self._state,
                completed_route_ids=self._state.completed_route_ids | {target},
            )
        )
        self._log.info("Marked route %s complete", target)

    def debug_reset(self, current_total_miles: float) -> None:
        """Test hook: re-arm the active route from zero and clear completions.

        Lifetime totals are untouched. Not exposed by the engine facade.
        """

        self._write(
            replace(
                self._state,
                starting_baseline=current_total_miles,
                completed_route_ids=frozenset(),
            )
        )
        self._log.warning(
            "Debug reset of route %s baseline=%.2f",
            self._state.active_route_id,
            current_total_miles,
        )


__all__ = ["RouteProgressStore"]

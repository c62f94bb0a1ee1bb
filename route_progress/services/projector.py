"""Stateless projection of persisted state into the consumer view model."""

from __future__ import annotations

from typing import List

from ..catalog import RouteCatalog
from ..config import ORIGIN_LABEL_THRESHOLD_MILES, UPCOMING_LANDMARK_LIMIT
from ..geometry import nearest_by_distance_field, position_at, split
from ..models import (
    ActivitySyncState,
    Landmark,
    Route,
    RouteProgressState,
    RouteProgressView,
)


def route_progress_miles(
    route_state: RouteProgressState, sync_state: ActivitySyncState
) -> float:
    return max(0.0, sync_state.lifetime_total_miles - route_state.starting_baseline)


def nearest_location_name(route: Route, progress_miles: float) -> str:
    """Nearest curated landmark, or the origin near the start of the route.

    Early in a route the nearest landmark is usually far away relative to the
    miles actually run, so the origin label is reported instead.
    """

    if progress_miles < ORIGIN_LABEL_THRESHOLD_MILES:
        return route.origin
    nearest = nearest_by_distance_field(route.landmarks, progress_miles)
    if nearest is None:
        return route.origin
    return nearest.display_name


def upcoming_landmarks(
    route: Route, progress_miles: float, limit: int = UPCOMING_LANDMARK_LIMIT
) -> List[Landmark]:
    ahead = [
        landmark
        for landmark in route.landmarks
        if landmark.distance_from_start > progress_miles
    ]
    ahead.sort(key=lambda landmark: landmark.distance_from_start)
    return ahead[: max(0, limit)]


def nearest_points_of_interest(
    route: Route, progress_miles: float, limit: int
) -> List[Landmark]:
    """Points of interest ordered by how close they are to ``progress_miles``."""

    if limit <= 0:
        return []
    ordered = sorted(
        route.points_of_interest,
        key=lambda poi: abs(poi.distance_from_start - progress_miles),
    )
    return ordered[:limit]


def project_progress(
    route_state: RouteProgressState,
    sync_state: ActivitySyncState,
    catalog: RouteCatalog,
) -> RouteProgressView:
    progress = route_progress_miles(route_state, sync_state)
    route = catalog.lookup(route_state.active_route_id)
    if route is None:
        return RouteProgressView(route=None, progress_miles=progress)

    total = route.nominal_total_distance
    fraction = min(progress / total, 1.0) if total > 0 else 0.0
    completed, remaining = split(progress, route)
    return RouteProgressView(
        route=route,
        progress_miles=progress,
        percent_complete=fraction * 100.0,
        coordinate=position_at(progress, route),
        nearest_location_name=nearest_location_name(route, progress),
        is_complete=progress >= total,
        upcoming_landmarks=tuple(upcoming_landmarks(route, progress)),
        completed_path=tuple(completed),
        remaining_path=tuple(remaining),
    )


__all__ = [
    "route_progress_miles",
    "nearest_location_name",
    "upcoming_landmarks",
    "nearest_points_of_interest",
    "project_progress",
]

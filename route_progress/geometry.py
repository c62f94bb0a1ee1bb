"""Pure path geometry: lengths, interpolation and splitting along a route.

Progress is mapped onto the path through a fraction of the route's nominal
distance rather than through the geometric length directly. The advertised
distance drives percent-complete and completion, while the coordinates only
approximate the roads, so 0 always maps to the first coordinate and the
nominal total always maps to the last one.
"""

from __future__ import annotations

import math
from operator import attrgetter
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
import polyline
from cachetools import LRUCache, cached
from cachetools.keys import hashkey

from .config import PATH_LENGTH_CACHE_SIZE
from .models import Coordinate, Route

_EARTH_RADIUS_M = 6_371_000.0
_ORIGIN = Coordinate(0.0, 0.0)

T = TypeVar("T")


def haversine_m(first: Coordinate, second: Coordinate) -> float:
    """Great-circle distance between two coordinates in metres."""

    lat1_rad = math.radians(first.latitude)
    lat2_rad = math.radians(second.latitude)
    delta_lat = lat2_rad - lat1_rad
    delta_lon = math.radians(second.longitude - first.longitude)
    a = (
        math.sin(delta_lat / 2.0) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2.0) ** 2
    )
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return _EARTH_RADIUS_M * c


def segment_lengths(path: Sequence[Coordinate]) -> np.ndarray:
    """Return the great-circle length (metres) of each consecutive pair."""

    if len(path) < 2:
        return np.zeros(0, dtype=float)
    coords = np.radians(np.asarray([point.as_tuple() for point in path], dtype=float))
    lat = coords[:, 0]
    lon = coords[:, 1]
    delta_lat = np.diff(lat)
    delta_lon = np.diff(lon)
    a = (
        np.sin(delta_lat / 2.0) ** 2
        + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(delta_lon / 2.0) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    return 2.0 * _EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


@cached(
    cache=LRUCache(maxsize=max(1, PATH_LENGTH_CACHE_SIZE)),
    key=lambda path: hashkey(tuple(path)),
)
def cumulative_distances(path: Sequence[Coordinate]) -> np.ndarray:
    """Running path length (metres) at each coordinate, starting at 0.

    The returned array is shared between callers and is read-only.
    """

    cumulative = np.concatenate(([0.0], np.cumsum(segment_lengths(path))))
    cumulative.setflags(write=False)
    return cumulative


def path_length(path: Sequence[Coordinate]) -> float:
    """Sum of great-circle distances (metres) between consecutive coordinates."""

    if len(path) < 2:
        return 0.0
    return float(cumulative_distances(path)[-1])


def _interpolate(start: Coordinate, end: Coordinate, fraction: float) -> Coordinate:
    if fraction <= 0.0:
        return start
    if fraction >= 1.0:
        return end
    return Coordinate(
        latitude=start.latitude + (end.latitude - start.latitude) * fraction,
        longitude=start.longitude + (end.longitude - start.longitude) * fraction,
    )


def _progress_fraction(progress: float, nominal_total: float) -> float:
    if nominal_total <= 0:
        return 0.0
    return min(max(progress / nominal_total, 0.0), 1.0)


def _locate(progress: float, route: Route) -> Tuple[int, float]:
    """Return ``(segment index, segment-local fraction)`` for ``progress``.

    Requires a path of at least two coordinates.
    """

    path = route.path
    last_segment = len(path) - 2
    fraction = _progress_fraction(progress, route.nominal_total_distance)
    if fraction >= 1.0:
        return last_segment, 1.0
    cumulative = cumulative_distances(path)
    target = fraction * float(cumulative[-1])
    for index in range(len(path) - 1):
        start = float(cumulative[index])
        end = float(cumulative[index + 1])
        if end >= target:
            length = end - start
            local = (target - start) / length if length > 0 else 0.0
            return index, local
    return last_segment, 1.0


def position_at(progress: float, route: Route) -> Coordinate:
    """Interpolated coordinate ``progress`` nominal miles along ``route``."""

    path = route.path
    if not path:
        return _ORIGIN
    if len(path) < 2:
        return path[0]
    index, local = _locate(progress, route)
    return _interpolate(path[index], path[index + 1], local)


def split(
    progress: float, route: Route
) -> Tuple[List[Coordinate], List[Coordinate]]:
    """Split the path at ``progress`` into completed and remaining polylines.

    Both halves contain the interpolated split point, so the last completed
    coordinate always equals the first remaining one.
    """

    path = route.path
    if not path:
        return [_ORIGIN], [_ORIGIN]
    if len(path) < 2:
        return [path[0]], [path[0]]
    index, local = _locate(progress, route)
    split_point = _interpolate(path[index], path[index + 1], local)
    completed = list(path[: index + 1])
    completed.append(split_point)
    remaining = [split_point]
    remaining.extend(path[index + 1 :])
    return completed, remaining


def nearest_by_distance_field(
    candidates: Iterable[T],
    progress: float,
    key: Callable[[T], float] = attrgetter("distance_from_start"),
) -> Optional[T]:
    """Candidate whose distance-from-start is closest to ``progress``.

    Ties go to the first candidate encountered.
    """

    best: Optional[T] = None
    best_delta = math.inf
    for candidate in candidates:
        delta = abs(key(candidate) - progress)
        if delta < best_delta:
            best = candidate
            best_delta = delta
    return best


def encode_path(path: Sequence[Coordinate]) -> str:
    """Encode ``path`` as a Google encoded polyline string."""

    return polyline.encode([point.as_tuple() for point in path])


__all__ = [
    "haversine_m",
    "segment_lengths",
    "cumulative_distances",
    "path_length",
    "position_at",
    "split",
    "nearest_by_distance_field",
    "encode_path",
]

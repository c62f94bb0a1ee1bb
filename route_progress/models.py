from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import SyncError


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class Landmark:
    id: str
    name: str
    region: str
    coordinate: Coordinate
    # Same nominal units (miles) as the owning route.
    distance_from_start: float

    @property
    def display_name(self) -> str:
        return f"{self.name}, {self.region}" if self.region else self.name


@dataclass(frozen=True)
class Route:
    id: str
    name: str
    origin: str
    destination: str
    path: Tuple[Coordinate, ...]
    # Advertised distance in miles; may differ from the geometric path length.
    nominal_total_distance: float
    landmarks: Tuple[Landmark, ...] = ()
    points_of_interest: Tuple[Landmark, ...] = ()


@dataclass(frozen=True)
class Activity:
    id: int
    kind: str
    distance_meters: float
    start_time: datetime
    sport_type: str | None = None


@dataclass(frozen=True)
class RouteProgressState:
    active_route_id: str
    starting_baseline: float = 0.0
    completed_route_ids: frozenset[str] = frozenset()

    def to_record(self) -> Dict[str, Any]:
        return {
            "active_route_id": self.active_route_id,
            "starting_baseline": self.starting_baseline,
            "completed_route_ids": self.completed_route_ids,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RouteProgressState":
        active = record["active_route_id"]
        if not isinstance(active, str) or not active:
            raise ValueError("active_route_id must be a non-empty string")
        return cls(
            active_route_id=active,
            starting_baseline=float(record.get("starting_baseline", 0.0)),
            completed_route_ids=frozenset(
                str(value) for value in record.get("completed_route_ids", ())
            ),
        )


@dataclass(frozen=True)
class ActivitySyncState:
    lifetime_total_miles: float = 0.0
    lifetime_activity_count: int = 0
    latest_activity_miles: float = 0.0
    # Epoch seconds of the last committed sync; only ever moves forward.
    last_synced_at: int = 0
    has_synced: bool = False
    known_activity_ids: frozenset[int] = frozenset()

    def to_record(self) -> Dict[str, Any]:
        return {
            "lifetime_total_miles": self.lifetime_total_miles,
            "lifetime_activity_count": self.lifetime_activity_count,
            "latest_activity_miles": self.latest_activity_miles,
            "last_synced_at": self.last_synced_at,
            "has_synced": self.has_synced,
            "known_activity_ids": self.known_activity_ids,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ActivitySyncState":
        return cls(
            lifetime_total_miles=float(record.get("lifetime_total_miles", 0.0)),
            lifetime_activity_count=int(record.get("lifetime_activity_count", 0)),
            latest_activity_miles=float(record.get("latest_activity_miles", 0.0)),
            last_synced_at=int(record.get("last_synced_at", 0)),
            has_synced=bool(record.get("has_synced", False)),
            known_activity_ids=frozenset(
                int(value) for value in record.get("known_activity_ids", ())
            ),
        )


@dataclass(frozen=True)
class SyncResult:
    gain_miles: float = 0.0
    error: Optional[SyncError] = None
    skipped: bool = False
    full_sync: bool = False
    new_activity_count: int = 0
    completed_route_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


@dataclass(frozen=True)
class RouteProgressView:
    route: Optional[Route]
    progress_miles: float = 0.0
    percent_complete: float = 0.0
    coordinate: Optional[Coordinate] = None
    nearest_location_name: str = ""
    is_complete: bool = False
    upcoming_landmarks: Tuple[Landmark, ...] = ()
    completed_path: Tuple[Coordinate, ...] = field(default_factory=tuple)
    remaining_path: Tuple[Coordinate, ...] = field(default_factory=tuple)

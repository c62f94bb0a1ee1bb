"""Route progress engine: lifetime running distance mapped onto virtual routes."""

from .catalog import DEFAULT_CATALOG, RouteCatalog
from .engine import RouteProgressEngine
from .errors import SyncError
from .models import (
    Activity,
    ActivitySyncState,
    Coordinate,
    Landmark,
    Route,
    RouteProgressState,
    RouteProgressView,
    SyncResult,
)

__all__ = [
    "RouteProgressEngine",
    "RouteCatalog",
    "DEFAULT_CATALOG",
    "SyncError",
    "Activity",
    "ActivitySyncState",
    "Coordinate",
    "Landmark",
    "Route",
    "RouteProgressState",
    "RouteProgressView",
    "SyncResult",
]

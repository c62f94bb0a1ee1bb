"""Service layer package.

Exports the stateful services and the projector consumed by the engine facade.
"""

from .activity_sync import ActivitySyncEngine
from .projector import nearest_points_of_interest, project_progress
from .route_progress_store import RouteProgressStore

__all__ = [
    "ActivitySyncEngine",
    "RouteProgressStore",
    "nearest_points_of_interest",
    "project_progress",
]

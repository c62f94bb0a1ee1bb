"""Central configuration for the route progress engine.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
# Directory (absolute or relative) holding one JSON file per persisted record.
STATE_DIR = os.getenv("ROUTE_PROGRESS_STATE_DIR", "route_progress_state")

# Keys used in the durable key-value store.
ROUTE_PROGRESS_STATE_KEY = "route_progress_state"
ACTIVITY_SYNC_STATE_KEY = "activity_sync_state"
TOKEN_STATE_KEY = "strava_tokens"


# ---------------------------------------------------------------------------
# Strava settings
# ---------------------------------------------------------------------------
STRAVA_BASE_URL = "https://www.strava.com/api/v3"
STRAVA_OAUTH_URL = "https://www.strava.com/oauth/token"

# Client credentials pulled from the environment. Do not hardcode secrets.
CLIENT_ID = os.getenv("STRAVA_CLIENT_ID", "")
CLIENT_SECRET = os.getenv("STRAVA_CLIENT_SECRET", "")

# Refresh the access token this many seconds before it expires.
TOKEN_REFRESH_MARGIN_SECONDS = _env_int("TOKEN_REFRESH_MARGIN_SECONDS", 300)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)

# Rate limiter settings.
# RATE_LIMIT_NEAR_LIMIT_BUFFER arms the throttle when this close to the short-window limit.
RATE_LIMIT_NEAR_LIMIT_BUFFER = _env_int("RATE_LIMIT_NEAR_LIMIT_BUFFER", 1)
# RATE_LIMIT_THROTTLE_SECONDS is how long requests are refused after a 429 or near-limit signal.
RATE_LIMIT_THROTTLE_SECONDS = _env_int("RATE_LIMIT_THROTTLE_SECONDS", 60)


# ---------------------------------------------------------------------------
# Activity sync
# ---------------------------------------------------------------------------
# Strava's maximum page size; a shorter page marks the end of the feed.
ACTIVITY_PAGE_SIZE = 200

# Pause between page fetches to stay under the provider's rate ceiling.
SYNC_PAGE_DELAY_SECONDS = 0.3

# Backward offset applied to the incremental cursor. Strava's activity list can
# lag behind uploads, so the cursor starts this far before the last sync.
SYNC_SAFETY_WINDOW_SECONDS = _env_int("SYNC_SAFETY_WINDOW_SECONDS", 2 * 3600)

# Upper bound on pages fetched by one sync pass. Set to 0 to disable.
SYNC_MAX_PAGES: int | None = _env_int("SYNC_MAX_PAGES", 0)
if SYNC_MAX_PAGES is not None and SYNC_MAX_PAGES <= 0:
    SYNC_MAX_PAGES = None

# Provider activity types that count toward route progress.
_counted_defaults = "Run,VirtualRun"
COUNTED_ACTIVITY_TYPES = tuple(
    value.strip()
    for value in os.getenv("COUNTED_ACTIVITY_TYPES", _counted_defaults).split(",")
    if value.strip()
)


# ---------------------------------------------------------------------------
# Routes and progress
# ---------------------------------------------------------------------------
DEFAULT_ROUTE_ID = "paris-city-loop"

# Below this many miles the origin label is reported instead of the nearest
# landmark.
ORIGIN_LABEL_THRESHOLD_MILES = _env_float("ORIGIN_LABEL_THRESHOLD_MILES", 10.0)

# Number of upcoming landmarks included in the progress view.
UPCOMING_LANDMARK_LIMIT = _env_int("UPCOMING_LANDMARK_LIMIT", 3)

# Default number of points of interest returned by nearest-POI lookups.
NEAREST_POI_LIMIT = _env_int("NEAREST_POI_LIMIT", 5)

# Maximum number of distinct paths whose cumulative lengths are cached.
PATH_LENGTH_CACHE_SIZE = _env_int("PATH_LENGTH_CACHE_SIZE", 64)


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
# Unit used by the CLI when printing distances ("miles" or "kilometers").
DISTANCE_UNIT = os.getenv("DISTANCE_UNIT", "miles")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# Print encoded polylines for completed/remaining paths in `status` output.
STATUS_INCLUDE_POLYLINE = _env_bool("STATUS_INCLUDE_POLYLINE", False)

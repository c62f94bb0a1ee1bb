"""Strava client components (session, rate limiter, activity feed)."""

from .activities import ActivityFeed, StravaActivityFeed, parse_activity  # noqa: F401
from .rate_limiter import RateLimiter  # noqa: F401
from .response_handling import classify_response, extract_error  # noqa: F401
from .session import create_default_session, get_default_session  # noqa: F401

"""Utilities for classifying Strava activity types."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from .config import COUNTED_ACTIVITY_TYPES
from .models import Activity

ActivityFilter = Callable[[Activity], bool]

__all__ = [
    "ActivityFilter",
    "normalize_activity_type",
    "normalize_activity_types",
    "activity_type_matches",
    "counted_activity_filter",
]


def normalize_activity_type(value: Any) -> str | None:
    """Return a lowercase activity type string or ``None`` when missing.

    The Strava API can return either ``type`` or ``sport_type`` values, often
    with inconsistent casing. Normalising once keeps downstream comparisons
    cheap and deterministic.
    """

    if value is None:
        return None
    normalized = str(value).strip().lower()
    return normalized or None


def normalize_activity_types(values: Iterable[Any]) -> set[str]:
    return {
        normalized
        for normalized in (normalize_activity_type(value) for value in values)
        if normalized
    }


def activity_type_matches(activity: Activity, allowed: set[str]) -> bool:
    """Return ``True`` when ``activity`` is one of the ``allowed`` types.

    Args:
        activity: Parsed activity with ``kind`` and optional ``sport_type``.
        allowed: Normalised set of permitted lower-case type names.

    Returns:
        ``True`` if either provider field matches one of the allowed values,
        otherwise ``False``. An empty ``allowed`` set implies no filtering
        should occur.
    """

    if not allowed:
        return True
    for value in (activity.sport_type, activity.kind):
        normalized = normalize_activity_type(value)
        if normalized and normalized in allowed:
            return True
    return False


def counted_activity_filter(
    activity_types: Iterable[str] = COUNTED_ACTIVITY_TYPES,
) -> ActivityFilter:
    """Build the predicate selecting activities that count toward progress."""

    allowed = normalize_activity_types(activity_types)

    def _matches(activity: Activity) -> bool:
        return activity_type_matches(activity, allowed)

    return _matches

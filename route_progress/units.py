"""Distance unit conversions."""

from __future__ import annotations

from enum import Enum

METERS_PER_MILE = 1609.34
KILOMETERS_PER_MILE = 1.60934


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


class DistanceUnit(str, Enum):
    """Display unit for distances stored internally in miles."""

    MILES = "miles"
    KILOMETERS = "kilometers"

    @property
    def abbreviation(self) -> str:
        return "mi" if self is DistanceUnit.MILES else "km"

    @property
    def display_name(self) -> str:
        return "Miles" if self is DistanceUnit.MILES else "Kilometers"

    def convert(self, miles: float) -> float:
        if self is DistanceUnit.KILOMETERS:
            return miles * KILOMETERS_PER_MILE
        return miles

    @classmethod
    def parse(cls, value: str | None) -> "DistanceUnit":
        """Return the unit named by ``value``; unknown names fall back to miles."""

        if value:
            normalized = value.strip().lower()
            for unit in cls:
                if normalized in (unit.value, unit.abbreviation):
                    return unit
        return cls.MILES


__all__ = [
    "METERS_PER_MILE",
    "KILOMETERS_PER_MILE",
    "meters_to_miles",
    "miles_to_meters",
    "DistanceUnit",
]

"""Static route catalog.

Routes are built once at import time from the literal definitions below and
never mutated. Lookups of unknown identifiers return ``None``; callers fall
back to the default route through :meth:`RouteCatalog.resolve`.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import DEFAULT_ROUTE_ID
from .models import Coordinate, Landmark, Route

LOGGER = logging.getLogger(__name__)

LandmarkRow = Tuple[str, str, float, float, float]


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _landmarks(route_id: str, rows: Sequence[LandmarkRow]) -> Tuple[Landmark, ...]:
    return tuple(
        Landmark(
            id=f"{route_id}:{_slug(name)}",
            name=name,
            region=region,
            coordinate=Coordinate(lat, lon),
            distance_from_start=miles,
        )
        for name, region, lat, lon, miles in rows
    )


def _route(
    route_id: str,
    name: str,
    origin: str,
    destination: str,
    total_miles: float,
    waypoints: Sequence[Tuple[float, float]],
    landmarks: Sequence[LandmarkRow],
    points_of_interest: Sequence[LandmarkRow] = (),
) -> Route:
    return Route(
        id=route_id,
        name=name,
        origin=origin,
        destination=destination,
        path=tuple(Coordinate(lat, lon) for lat, lon in waypoints),
        nominal_total_distance=total_miles,
        landmarks=_landmarks(route_id, landmarks),
        points_of_interest=_landmarks(route_id, points_of_interest),
    )


class RouteCatalog:
    """Read-only table of routes keyed by identifier, in display order."""

    def __init__(
        self, routes: Iterable[Route], default_route_id: str = DEFAULT_ROUTE_ID
    ) -> None:
        table: Dict[str, Route] = {}
        for route in routes:
            if route.id in table:
                raise ValueError(f"Duplicate route id {route.id!r}")
            if len(route.path) < 2:
                raise ValueError(f"Route {route.id!r} needs at least two coordinates")
            table[route.id] = route
        if default_route_id not in table:
            raise ValueError(f"Default route {default_route_id!r} is not in the catalog")
        self._routes = table
        self._default_route_id = default_route_id

    @property
    def default_route_id(self) -> str:
        return self._default_route_id

    @property
    def default_route(self) -> Route:
        return self._routes[self._default_route_id]

    def lookup(self, route_id: str | None) -> Optional[Route]:
        if route_id is None:
            return None
        return self._routes.get(route_id)

    def resolve(self, route_id: str | None) -> Route:
        """Return the route for ``route_id`` or the default route when unknown."""

        route = self.lookup(route_id)
        if route is None:
            LOGGER.info(
                "Unknown route id=%s; falling back to %s",
                route_id,
                self._default_route_id,
            )
            return self.default_route
        return route

    def all(self) -> List[Route]:
        return list(self._routes.values())

    def __contains__(self, route_id: object) -> bool:
        return route_id in self._routes

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)


PARIS_CITY_LOOP = _route(
    "paris-city-loop",
    "Paris City Loop",
    "Eiffel Tower",
    "Notre-Dame",
    28,
    [
        (48.8584, 2.2945),  # Eiffel Tower
        (48.8738, 2.2950),  # Arc de Triomphe
        (48.8867, 2.3431),  # Sacré-Cœur
        (48.8674, 2.3636),  # République
        (48.8614, 2.3933),  # Père Lachaise
        (48.8532, 2.3692),  # Bastille
        (48.8462, 2.3372),  # Luxembourg
        (48.8530, 2.3499),  # Notre-Dame
    ],
    [
        ("Arc de Triomphe", "Paris", 48.8738, 2.2950, 3),
        ("Sacré-Cœur", "Paris", 48.8867, 2.3431, 8),
        ("Place de la République", "Paris", 48.8674, 2.3636, 12),
        ("Père Lachaise", "Paris", 48.8614, 2.3933, 16),
        ("Bastille", "Paris", 48.8532, 2.3692, 19),
        ("Jardin du Luxembourg", "Paris", 48.8462, 2.3372, 24),
        ("Notre-Dame", "Paris", 48.8530, 2.3499, 28),
    ],
    [
        ("Trocadéro", "Paris", 48.8616, 2.2893, 1),
        ("Arc de Triomphe", "Paris", 48.8738, 2.2950, 3),
        ("Parc Monceau", "Paris", 48.8797, 2.3090, 5),
        ("Moulin Rouge", "Paris", 48.8841, 2.3322, 7),
        ("Sacré-Cœur", "Paris", 48.8867, 2.3431, 8),
        ("Canal Saint-Martin", "Paris", 48.8718, 2.3650, 11),
        ("Place de la République", "Paris", 48.8674, 2.3636, 12),
        ("Père Lachaise", "Paris", 48.8614, 2.3933, 16),
        ("Bastille", "Paris", 48.8532, 2.3692, 19),
        ("Jardin des Plantes", "Paris", 48.8439, 2.3596, 21),
        ("Panthéon", "Paris", 48.8462, 2.3464, 23),
        ("Jardin du Luxembourg", "Paris", 48.8462, 2.3372, 24),
        ("Saint-Germain-des-Prés", "Paris", 48.8540, 2.3339, 26),
        ("Notre-Dame", "Paris", 48.8530, 2.3499, 28),
    ],
)

LONDON_CITY_LOOP = _route(
    "london-city-loop",
    "London City Loop",
    "Tower Bridge",
    "Buckingham Palace",
    32,
    [
        (51.5055, -0.0754),  # Tower Bridge
        (51.5138, -0.0984),  # St Paul's
        (51.5308, -0.1238),  # King's Cross
        (51.5313, -0.1570),  # Regent's Park
        (51.5090, -0.1960),  # Notting Hill
        (51.5058, -0.1877),  # Kensington Palace
        (51.4995, -0.1248),  # Westminster
        (51.5014, -0.1419),  # Buckingham Palace
    ],
    [
        ("St Paul's Cathedral", "London", 51.5138, -0.0984, 4),
        ("King's Cross", "London", 51.5308, -0.1238, 9),
        ("Regent's Park", "London", 51.5313, -0.1570, 14),
        ("Notting Hill", "London", 51.5090, -0.1960, 20),
        ("Kensington Palace", "London", 51.5058, -0.1877, 23),
        ("Westminster", "London", 51.4995, -0.1248, 29),
        ("Buckingham Palace", "London", 51.5014, -0.1419, 32),
    ],
    [
        ("Tower of London", "London", 51.5081, -0.0759, 1),
        ("St Paul's Cathedral", "London", 51.5138, -0.0984, 4),
        ("British Museum", "London", 51.5194, -0.1270, 7),
        ("King's Cross", "London", 51.5308, -0.1238, 9),
        ("Camden Market", "London", 51.5415, -0.1464, 12),
        ("Regent's Park", "London", 51.5313, -0.1570, 14),
        ("Marble Arch", "London", 51.5131, -0.1589, 17),
        ("Notting Hill", "London", 51.5090, -0.1960, 20),
        ("Kensington Palace", "London", 51.5058, -0.1877, 23),
        ("Hyde Park Corner", "London", 51.5027, -0.1527, 26),
        ("Westminster", "London", 51.4995, -0.1248, 29),
        ("Buckingham Palace", "London", 51.5014, -0.1419, 32),
    ],
)

TOKYO_TO_KYOTO = _route(
    "tokyo-to-kyoto",
    "Tokaido Road",
    "Tokyo",
    "Kyoto",
    300,
    [
        (35.6812, 139.7671),  # Tokyo
        (35.4437, 139.6380),  # Yokohama
        (35.2564, 139.1557),  # Odawara
        (34.9756, 138.3828),  # Shizuoka
        (34.7108, 137.7261),  # Hamamatsu
        (35.1815, 136.9066),  # Nagoya
        (35.4233, 136.7607),  # Gifu
        (35.2745, 136.2597),  # Hikone
        (35.0045, 135.8686),  # Otsu
        (35.0116, 135.7681),  # Kyoto
    ],
    [
        ("Yokohama", "Kanagawa", 35.4437, 139.6380, 20),
        ("Odawara", "Kanagawa", 35.2564, 139.1557, 50),
        ("Shizuoka", "Shizuoka", 34.9756, 138.3828, 110),
        ("Hamamatsu", "Shizuoka", 34.7108, 137.7261, 160),
        ("Nagoya", "Aichi", 35.1815, 136.9066, 215),
        ("Hikone", "Shiga", 35.2745, 136.2597, 265),
        ("Kyoto", "Kyoto", 35.0116, 135.7681, 300),
    ],
    [
        ("Kawasaki", "Kanagawa", 35.5308, 139.7029, 12),
        ("Yokohama", "Kanagawa", 35.4437, 139.6380, 20),
        ("Fujisawa", "Kanagawa", 35.3390, 139.4900, 32),
        ("Odawara", "Kanagawa", 35.2564, 139.1557, 50),
        ("Hakone", "Kanagawa", 35.2324, 139.1069, 56),
        ("Numazu", "Shizuoka", 35.0956, 138.8636, 75),
        ("Shizuoka", "Shizuoka", 34.9756, 138.3828, 110),
        ("Kakegawa", "Shizuoka", 34.7690, 137.9985, 140),
        ("Hamamatsu", "Shizuoka", 34.7108, 137.7261, 160),
        ("Toyohashi", "Aichi", 34.7692, 137.3915, 180),
        ("Nagoya", "Aichi", 35.1815, 136.9066, 215),
        ("Gifu", "Gifu", 35.4233, 136.7607, 235),
        ("Hikone", "Shiga", 35.2745, 136.2597, 265),
        ("Otsu", "Shiga", 35.0045, 135.8686, 290),
        ("Kyoto", "Kyoto", 35.0116, 135.7681, 300),
    ],
)

NYC_TO_LA = _route(
    "nyc-to-la",
    "Coast to Coast",
    "New York City",
    "Los Angeles",
    2790,
    [
        (40.7128, -74.0060),  # NYC
        (40.7357, -74.1724),  # Newark
        (40.6023, -75.4714),  # Allentown
        (40.2732, -76.8867),  # Harrisburg
        (40.4406, -79.9959),  # Pittsburgh
        (41.0814, -81.5190),  # Akron
        (39.9612, -82.9988),  # Columbus
        (39.7589, -84.1916),  # Dayton
        (39.7684, -86.1581),  # Indianapolis
        (39.4667, -87.4139),  # Terre Haute
        (38.6270, -90.1994),  # St. Louis
        (39.0997, -94.5786),  # Kansas City
        (38.8403, -97.6114),  # Salina
        (39.7392, -104.9903),  # Denver
        (39.0639, -108.5506),  # Grand Junction
        (38.5733, -109.5498),  # Moab
        (40.7608, -111.8910),  # Salt Lake City
        (40.8410, -115.7631),  # Elko
        (39.5296, -119.8138),  # Reno
        (38.5816, -121.4944),  # Sacramento
        (36.7783, -119.4179),  # Fresno
        (35.3733, -119.0187),  # Bakersfield
        (34.0522, -118.2437),  # Los Angeles
    ],
    [
        ("Pittsburgh", "PA", 40.4406, -79.9959, 370),
        ("Indianapolis", "IN", 39.7684, -86.1581, 740),
        ("St. Louis", "MO", 38.6270, -90.1994, 950),
        ("Kansas City", "MO", 39.0997, -94.5786, 1200),
        ("Denver", "CO", 39.7392, -104.9903, 1630),
        ("Salt Lake City", "UT", 40.7608, -111.8910, 2020),
        ("Reno", "NV", 39.5296, -119.8138, 2370),
        ("Los Angeles", "CA", 34.0522, -118.2437, 2790),
    ],
    [
        ("Newark", "NJ", 40.7357, -74.1724, 10),
        ("Allentown", "PA", 40.6023, -75.4714, 90),
        ("Harrisburg", "PA", 40.2732, -76.8867, 170),
        ("Pittsburgh", "PA", 40.4406, -79.9959, 370),
        ("Akron", "OH", 41.0814, -81.5190, 480),
        ("Columbus", "OH", 39.9612, -82.9988, 560),
        ("Dayton", "OH", 39.7589, -84.1916, 630),
        ("Indianapolis", "IN", 39.7684, -86.1581, 740),
        ("Terre Haute", "IN", 39.4667, -87.4139, 810),
        ("St. Louis", "MO", 38.6270, -90.1994, 950),
        ("Kansas City", "MO", 39.0997, -94.5786, 1200),
        ("Salina", "KS", 38.8403, -97.6114, 1380),
        ("Denver", "CO", 39.7392, -104.9903, 1630),
        ("Grand Junction", "CO", 39.0639, -108.5506, 1870),
        ("Salt Lake City", "UT", 40.7608, -111.8910, 2020),
        ("Elko", "NV", 40.8410, -115.7631, 2250),
        ("Reno", "NV", 39.5296, -119.8138, 2370),
        ("Sacramento", "CA", 38.5816, -121.4944, 2500),
        ("Fresno", "CA", 36.7783, -119.4179, 2660),
        ("Bakersfield", "CA", 35.3733, -119.0187, 2720),
        ("Los Angeles", "CA", 34.0522, -118.2437, 2790),
    ],
)

DEFAULT_CATALOG = RouteCatalog(
    [PARIS_CITY_LOOP, LONDON_CITY_LOOP, TOKYO_TO_KYOTO, NYC_TO_LA]
)


__all__ = [
    "RouteCatalog",
    "DEFAULT_CATALOG",
    "PARIS_CITY_LOOP",
    "LONDON_CITY_LOOP",
    "TOKYO_TO_KYOTO",
    "NYC_TO_LA",
]

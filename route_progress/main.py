"""Command line interface for the route progress engine."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from .auth import StoredTokenProvider, TokenSet
from .config import (
    DISTANCE_UNIT,
    LOG_FORMAT,
    LOG_LEVEL,
    NEAREST_POI_LIMIT,
    STATE_DIR,
    STATUS_INCLUDE_POLYLINE,
)
from .engine import RouteProgressEngine
from .geometry import encode_path
from .storage import FileStore
from .units import DistanceUnit

LOGGER = logging.getLogger(__name__)


def _setup_logging(level: str = LOG_LEVEL) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="route-progress",
        description="Map lifetime Strava running distance onto a virtual route.",
    )
    parser.add_argument(
        "--state-dir",
        default=STATE_DIR,
        help="Directory holding persisted state (default: %(default)s)",
    )
    parser.add_argument(
        "--unit",
        default=DISTANCE_UNIT,
        help="Display unit: miles or kilometers (default: %(default)s)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("routes", help="List available routes")

    status = sub.add_parser("status", help="Show progress on the active route")
    status.add_argument(
        "--polyline",
        action="store_true",
        default=STATUS_INCLUDE_POLYLINE,
        help="Print encoded completed/remaining polylines",
    )

    switch = sub.add_parser("switch", help="Start a different route")
    switch.add_argument("route_id")

    sub.add_parser("sync", help="Fetch new activities from Strava")

    pois = sub.add_parser("pois", help="Nearest points of interest")
    pois.add_argument("--limit", type=int, default=NEAREST_POI_LIMIT)

    connect = sub.add_parser("connect", help="Store Strava OAuth tokens")
    connect.add_argument("--access-token", required=True)
    connect.add_argument("--refresh-token", required=True)
    connect.add_argument("--expires-at", type=int, required=True)

    sub.add_parser("disconnect", help="Forget stored Strava tokens")
    return parser


def _fmt(miles: float, unit: DistanceUnit) -> str:
    return f"{unit.convert(miles):,.1f} {unit.abbreviation}"


def _cmd_routes(engine: RouteProgressEngine, unit: DistanceUnit) -> List[str]:
    active = engine.route_store.active_route_id
    lines = []
    for route in engine.routes():
        marker = "*" if route.id == active else " "
        done = " (completed)" if route.id in engine.completed_route_ids else ""
        lines.append(
            f"{marker} {route.id:<18} {route.name}: {route.origin} -> "
            f"{route.destination}, {_fmt(route.nominal_total_distance, unit)}{done}"
        )
    return lines


def _cmd_status(
    engine: RouteProgressEngine, unit: DistanceUnit, include_polyline: bool
) -> List[str]:
    view = engine.progress()
    if view.route is None:
        return ["No active route."]
    route = view.route
    lines = [
        f"{route.name} ({route.origin} -> {route.destination})",
        f"Progress: {_fmt(view.progress_miles, unit)} of "
        f"{_fmt(route.nominal_total_distance, unit)} ({view.percent_complete:.0f}%)",
        "Status: route complete" if view.is_complete else f"Near: {view.nearest_location_name}",
    ]
    if view.coordinate is not None:
        lines.append(
            f"Position: {view.coordinate.latitude:.5f}, {view.coordinate.longitude:.5f}"
        )
    for landmark in view.upcoming_landmarks:
        ahead = landmark.distance_from_start - view.progress_miles
        lines.append(f"Ahead: {landmark.display_name} in {_fmt(ahead, unit)}")
    state = engine.sync_engine.state
    lines.append(
        f"Lifetime: {_fmt(state.lifetime_total_miles, unit)} over "
        f"{state.lifetime_activity_count} runs; last run {_fmt(state.latest_activity_miles, unit)}"
    )
    if include_polyline:
        lines.append(f"Completed polyline: {encode_path(view.completed_path)}")
        lines.append(f"Remaining polyline: {encode_path(view.remaining_path)}")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    _setup_logging()
    args = _build_parser().parse_args(argv)
    unit = DistanceUnit.parse(args.unit)
    store = FileStore(args.state_dir)
    tokens = StoredTokenProvider(store)

    if args.command == "connect":
        tokens.save_tokens(
            TokenSet(
                access_token=args.access_token,
                refresh_token=args.refresh_token,
                expires_at=args.expires_at,
            )
        )
        print("Strava tokens stored.")
        return 0
    if args.command == "disconnect":
        tokens.disconnect()
        print("Strava tokens cleared.")
        return 0

    with RouteProgressEngine(store, token_provider=tokens) as engine:
        if args.command == "routes":
            lines = _cmd_routes(engine, unit)
        elif args.command == "status":
            lines = _cmd_status(engine, unit, args.polyline)
        elif args.command == "switch":
            route = engine.switch_route(args.route_id)
            lines = [f"Now running {route.name} ({route.id})."]
        elif args.command == "pois":
            lines = [
                f"{poi.display_name} at {_fmt(poi.distance_from_start, unit)}"
                for poi in engine.nearest_points_of_interest(args.limit)
            ]
        else:
            result = engine.sync()
            if result.error is not None:
                LOGGER.error("Sync failed: %s", result.error)
                print(result.error.user_message, file=sys.stderr)
                return 1
            if result.skipped:
                lines = ["A sync is already running."]
            else:
                lines = [f"Synced. Gain: {_fmt(result.gain_miles, unit)}."]
                if result.completed_route_id:
                    lines.append(f"Route {result.completed_route_id} complete!")
    for line in lines:
        print(line)
    return 0

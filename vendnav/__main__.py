#!/usr/bin/env python3
"""
VendHub navigation - Turn-by-turn walking directions to a vending machine

Usage:
    python -m vendnav --dest LAT LON [options]

Options:
    --dest LAT LON    Destination (the vending machine)
    --origin LAT LON  Starting point (default: current GPS fix)
    --name NAME       Destination name for the arrival announcement
    --steps FILE      Load route steps from JSON instead of calling OSRM
    --playback FILE   Playback GPS trace from JSON file
    --speed FACTOR    Playback speed multiplier (default: 1.0)
    --record FILE     Record GPS trace to JSON file for debugging
    --map FILE        Write a live route map to an HTML file
    --mute            Disable voice announcements
    --log FILE        Log file path (default: vendnav_TIMESTAMP.log)
    --osrm URL        OSRM server base URL
    --mode MODE       Travel mode: walking or driving (default: walking)
"""

import argparse
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from .app import RouteHost
from .audio import create_speech_engine
from .config import CONFIG
from .directions import (
    TRAVEL_PROFILES,
    DirectionsError,
    OSRMDirections,
    external_maps_url,
    load_route_file,
)
from .gps import (
    Geolocation,
    GeolocationRecorder,
    PlaybackGeolocation,
    PositionOptions,
    detect_geolocation,
)
from .logger import Logger
from .loop import EventLoop
from .map_view import FoliumMapView
from .models import GeoPoint

ARRIVAL_GRACE = 5.0  # seconds to let the arrival announcement play


def current_position(geolocation: Geolocation, loop: EventLoop) -> Optional[GeoPoint]:
    """Block on a one-shot fix"""
    result = {}
    geolocation.get_current_position(
        lambda sample: result.update(sample=sample),
        lambda error: result.update(error=error),
        PositionOptions(timeout_ms=CONFIG["current_position_timeout"]),
    )
    loop.run_until(lambda: bool(result))
    if "sample" in result:
        return result["sample"].coords
    print(f"Could not get GPS location: {result['error']}")
    return None


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="VendHub navigation - Turn-by-turn walking directions to a vending machine"
    )
    parser.add_argument("--dest", type=float, nargs=2, metavar=("LAT", "LON"),
                        help="Destination coordinates")
    parser.add_argument("--origin", type=float, nargs=2, metavar=("LAT", "LON"),
                        help="Starting coordinates (default: current GPS fix)")
    parser.add_argument("--name", default="",
                        help="Destination name for the arrival announcement")
    parser.add_argument("--steps", metavar="FILE",
                        help="Load route steps from JSON instead of calling OSRM")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--map", metavar="FILE",
                        help="Write a live route map to an HTML file")
    parser.add_argument("--mute", action="store_true",
                        help="Disable voice announcements")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: vendnav_TIMESTAMP.log)")
    parser.add_argument("--osrm", metavar="URL",
                        help=f"OSRM server base URL (default: {CONFIG['osrm_url']})")
    parser.add_argument("--mode", choices=sorted(TRAVEL_PROFILES), default="walking",
                        help="Travel mode (default: walking)")

    args = parser.parse_args(argv)

    if args.steps is None and args.dest is None:
        parser.error("--dest is required unless --steps is given")
    if args.record and args.playback:
        parser.error("--record and --playback cannot be combined")

    log_path = args.log or f"vendnav_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    logger = Logger(log_path, destination=args.name or None)
    loop = EventLoop()

    # Set up GPS source
    playback: Optional[PlaybackGeolocation] = None
    recorder: Optional[GeolocationRecorder] = None
    geolocation: Optional[Geolocation]
    if args.playback:
        if not Path(args.playback).exists():
            print(f"Playback file not found: {args.playback}")
            sys.exit(1)
        playback = PlaybackGeolocation(args.playback, loop, args.speed)
        geolocation = playback
    else:
        geolocation = detect_geolocation(loop)
        if geolocation is None:
            print("No geolocation available on this device (try --playback)")
            sys.exit(1)
        if args.record:
            recorder = GeolocationRecorder(geolocation, args.record)
            geolocation = recorder

    # Route
    if args.steps:
        route = load_route_file(args.steps)
    else:
        origin = GeoPoint(*args.origin) if args.origin else current_position(geolocation, loop)
        if origin is None:
            sys.exit(1)
        destination = GeoPoint(*args.dest)
        directions = OSRMDirections(base_url=args.osrm, profile=TRAVEL_PROFILES[args.mode])
        try:
            route = directions.calculate_route(origin, destination)
        except DirectionsError as e:
            logger.log("Route calculation failed", {"code": e.code, "detail": e.detail})
            print(e)
            print(f"Open in maps: {external_maps_url(destination, args.name, travel_mode=args.mode.upper())}")
            sys.exit(1)

    print("\n=== VendHub navigation ===")
    print(f"Route: {route.distance_text}, {route.duration_text}, {len(route.steps)} steps")
    for i, step in enumerate(route.steps):
        print(f"  {i + 1:>2}. {step.instruction_text}")
    print("Press Ctrl+C to stop\n")

    engine = None if args.mute else create_speech_engine(loop)
    host = RouteHost(
        geolocation,
        engine,
        loop,
        map_view=FoliumMapView(args.map) if args.map else None,
        logger=logger,
        voice_enabled=not args.mute,
    )

    def finished() -> bool:
        return host.arrived or (playback is not None and playback.is_finished())

    try:
        host.start_navigation(route, args.name)
        loop.run_until(finished)
        if host.arrived and engine is not None:
            deadline = time.monotonic() + ARRIVAL_GRACE
            loop.run_until(lambda: time.monotonic() >= deadline)
        elif playback is not None:
            print("\nPlayback finished")
            logger.log("Playback finished")
    except KeyboardInterrupt:
        print("\nNavigation interrupted")
        logger.log("Navigation interrupted by user")
    finally:
        logger.log("Navigation summary", host.get_state())
        host.close()
        if engine is not None:
            engine.close()
        if recorder is not None:
            recorder.save()
        logger.close()
        loop.close()


if __name__ == "__main__":
    main()

"""
passwatch passes --tle iss.txt --lat 41.702 --lon -76.014 --days 3
passwatch status --tle iss.txt
passwatch watch --tle iss.txt --arm-all
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

from loguru import logger

from passwatch.astrodynamics.geometry import elevation_azimuth, elevation_band
from passwatch.astrodynamics.pass_search import find_passes
from passwatch.astrodynamics.propagator import SkyfieldPropagator, load_tle_file
from passwatch.base.errors import PasswatchError
from passwatch.base.models import ObserverPosition
from passwatch.common.utils import CustomJSONEncoder, format_pass_time, local_to_utc, time_until
from passwatch.tracker import controller
from passwatch.tracker.config import TrackerConfig

package_logger = logging.getLogger("passwatch")
package_logger.setLevel(logging.WARNING)


def build_config(args) -> TrackerConfig:
    config = TrackerConfig()
    if args.tle is not None:
        config.TLE_FILE = args.tle
    if args.lat is not None:
        config.LATITUDE = args.lat
    if args.lon is not None:
        config.LONGITUDE = args.lon
    if args.tz is not None:
        config.TIMEZONE = args.tz
    return config


def handle_passes(args, config: TrackerConfig) -> None:
    elements = load_tle_file(config.TLE_FILE)
    observer = ObserverPosition(config.LATITUDE, config.LONGITUDE, config.ALTITUDE)
    now = datetime.now(timezone.utc)
    start = local_to_utc(datetime.fromisoformat(args.start), config.TIMEZONE) if args.start else now
    passes = find_passes(SkyfieldPropagator(), elements, observer, start, args.days)

    if args.json:
        print(json.dumps(passes, indent=4, cls=CustomJSONEncoder))
        return
    if not passes:
        print(f"No visible passes in the next {args.days} days")
        return
    print(f"{elements.name}: {len(passes)} visible passes in the next {args.days} days")
    for p in passes:
        print(
            f"{format_pass_time(p.start_time, config.TIMEZONE)} -> {format_pass_time(p.end_time, config.TIMEZONE)}  "
            f"{time_until(p.start_time, now):<16} peak {p.max_elevation_deg:>2}°  {p.duration_minutes:>2} min  "
            f"{p.compass_label:<16} {p.direction:<10} {p.quality}  (id {p.id})"
        )


def handle_status(args, config: TrackerConfig) -> None:
    elements = load_tle_file(config.TLE_FILE)
    observer = ObserverPosition(config.LATITUDE, config.LONGITUDE, config.ALTITUDE)
    position = SkyfieldPropagator().propagate(elements, datetime.now(timezone.utc))
    reading = elevation_azimuth(observer, position)
    response = {
        "satellite": elements.name,
        "position": position,
        "reading": reading,
        "direction": reading.simple_direction,
        "sky_position": elevation_band(reading.elevation_deg)[1],
    }
    print(json.dumps(response, indent=4, cls=CustomJSONEncoder))


def main(argv=None):
    # Setup argparser
    parser = argparse.ArgumentParser(
        description="Predict satellite passes and schedule pass reminders",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--tle", type=str, help="TLE file (2 or 3 lines)")
    parser.add_argument("--lat", type=float, help="Observer latitude (deg)")
    parser.add_argument("--lon", type=float, help="Observer longitude (deg)")
    parser.add_argument("--tz", type=str, help="Display timezone, e.g. US/Eastern")
    subparsers = parser.add_subparsers(dest="command", title="Commands", metavar="<command>")

    # Subparser for the 'passes' command
    parser_passes = subparsers.add_parser("passes", help="List upcoming passes")
    parser_passes.add_argument("--days", type=float, default=TrackerConfig.DAYS_AHEAD, help="Days to search ahead")
    parser_passes.add_argument("--start", type=str, help="Search start, ISO format in the display timezone")
    parser_passes.add_argument("--json", action="store_true", help="Print passes as JSON")

    # Sub-command 'status'
    subparsers.add_parser("status", help="Current elevation, azimuth and visibility")

    # Sub-command 'watch'
    parser_watch = subparsers.add_parser("watch", help="Track continuously and deliver reminders")
    parser_watch.add_argument("--arm-all", action="store_true", help="Arm reminders for every predicted pass")
    parser_watch.add_argument("--snapshots", action="store_true", help="Print every monitor snapshot")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    config = build_config(args)
    try:
        if args.command == "passes":
            handle_passes(args, config)
        elif args.command == "status":
            handle_status(args, config)
        elif args.command == "watch":
            package_logger.setLevel(logging.INFO)
            logger.info(f"Watching {config.TLE_FILE} from ({config.LATITUDE}, {config.LONGITUDE}), Ctrl-C to stop")
            asyncio.run(controller.main(config, arm_all=args.arm_all, print_snapshots=args.snapshots))
    except PasswatchError as e:
        logger.error(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

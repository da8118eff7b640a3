"""
Command-line front end: run the simulator and write samples to stdout or a file.
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from . import __version__
from .channels import FileSink, OutputSink, StreamSink
from .config import load_config
from .constants import (
    DEFAULT_CHANNELS, DEFAULT_INITIAL_SPEED, DEFAULT_START_LATITUDE,
    DEFAULT_START_LONGITUDE, OutputFormat,
)
from .errors import MockLocationError
from .log import setup_logging
from .route_loader import load_route_config
from .routes import RouteConfig
from .simulator import Simulator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mock-location',
        description='Stream simulated walking/running positions along a route.')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    route = parser.add_argument_group('route')
    route.add_argument('--route', metavar='FILE',
                       help='JSON/GeoJSON file of (longitude, latitude) pairs; '
                            'a procedural path is generated when omitted')
    route.add_argument('--route-id', help='route id or name inside a FeatureCollection')
    route.add_argument('--max-waypoints', type=int, help='thin the fixed route to about N points')
    route.add_argument('--lat', type=float, default=DEFAULT_START_LATITUDE,
                       help='procedural start latitude')
    route.add_argument('--lon', type=float, default=DEFAULT_START_LONGITUDE,
                       help='procedural start longitude')
    route.add_argument('--seed', type=int, help='seed for a reproducible procedural path')
    route.add_argument('--segment-length', type=float, default=3.0,
                       help='procedural segment length in metres')

    motion = parser.add_argument_group('motion')
    motion.add_argument('--speed', type=float, default=DEFAULT_INITIAL_SPEED,
                        help='initial target speed in m/s')
    motion.add_argument('--max-speed', type=float, help='maximum target speed in m/s')
    motion.add_argument('--interval', type=float, help='tick interval in seconds')
    motion.add_argument('--duration', type=float,
                        help='seconds to run (default: until interrupted)')
    motion.add_argument('--instant', action='store_true',
                        help='generate --duration seconds of samples without waiting')

    output = parser.add_argument_group('output')
    output.add_argument('--format', choices=[f.value for f in OutputFormat],
                        default=OutputFormat.JSON.value)
    output.add_argument('--channels', default=','.join(DEFAULT_CHANNELS),
                        help='comma-separated channel names')
    output.add_argument('--output', metavar='FILE', help='write samples to FILE instead of stdout')

    parser.add_argument('--config', metavar='FILE', help='JSON simulator config')
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR')
    parser.add_argument('--log-file', metavar='FILE', help='also log to a rotating FILE')
    return parser


def _route_from_args(args) -> RouteConfig:
    if args.route:
        return load_route_config(args.route, args.route_id, args.max_waypoints)
    return RouteConfig.procedural(args.lat, args.lon, seed=args.seed,
                                  segment_length=args.segment_length)


def _sink_from_args(args) -> OutputSink:
    channels = [c.strip() for c in args.channels.split(',') if c.strip()]
    fmt = OutputFormat(args.format)
    if args.output:
        return FileSink(args.output, channels=channels, fmt=fmt)
    return StreamSink(sys.stdout, channels=channels, fmt=fmt)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        config = load_config(args.config, max_speed=args.max_speed,
                             interval_seconds=args.interval)
        route = _route_from_args(args)
        sink = _sink_from_args(args)
        simulator = Simulator(sink, config=config)

        if args.instant:
            if args.duration is None:
                logger.error("--instant needs --duration")
                return 2
            samples = simulator.generate(route, args.duration, initial_speed=args.speed)
            logger.info("Generated %d samples", len(samples))
            return 0

        simulator.start(route, initial_speed=args.speed)
    except MockLocationError as e:
        logger.error("%s", e)
        return 2

    deadline = None if args.duration is None else time.monotonic() + args.duration
    try:
        while simulator.is_running():
            if deadline is not None and time.monotonic() >= deadline:
                break
            simulator.wait(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        simulator.stop()

    return 1 if simulator.last_error else 0


if __name__ == '__main__':
    sys.exit(main())

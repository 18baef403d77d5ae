"""
Command line entry point

Reads Mode S messages from stdin or a TCP feed and keeps a table of the
aircraft heard recently on the terminal.
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from .aircraft_tracker import AircraftTracker
from .config import ConfigManager, SourceConfig, TrackerConfig, create_default_config
from .decoder import MessageDecoder
from .display import TableRenderer
from .exceptions import ConfigurationError
from .message_source import DEFAULT_RAW_PORT, SOURCE_FORMATS, MessageSource, NetworkSource, StdinSource
from .utils import setup_logging
from .workers import IngestionWorker, RenderLoop

logger = logging.getLogger(__name__)

SUPERVISE_INTERVAL_SEC = 0.2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flight-tracker",
        description="ADS-B flight tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rtl_adsb | %(prog)s stdin
  %(prog)s tcp localhost 30002
  %(prog)s --expire 120 tcp radar.local 30005 --format beast
  %(prog)s --config flight_tracker.json
        """
    )

    parser.add_argument(
        '--expire', '-e',
        type=float,
        help='Number of seconds before hiding stale entries (default: 60)'
    )
    parser.add_argument(
        '--refresh',
        type=float,
        help='Seconds between table refreshes (default: 1)'
    )
    parser.add_argument(
        '--config', '-c',
        help='Path to a JSON configuration file'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (default: WARNING)'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this file'
    )
    parser.add_argument(
        '--no-crc',
        action='store_true',
        help='Accept extended squitters that fail the CRC check'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='SOURCE')
    subparsers.add_parser('stdin', help='Read messages from stdin')

    tcp = subparsers.add_parser('tcp', help='Read messages from a TCP server')
    tcp.add_argument('host', help='host')
    tcp.add_argument('port', type=int, nargs='?', default=DEFAULT_RAW_PORT, help='port')
    tcp.add_argument(
        '--format', '-f',
        choices=SOURCE_FORMATS,
        default='avr',
        help='Feed format (default: avr)'
    )

    return parser


def build_config(args: argparse.Namespace) -> TrackerConfig:
    """Merge the configuration file (if any) with command line overrides."""
    if args.config:
        config = ConfigManager(args.config).load_config()
    elif args.command is None:
        raise ConfigurationError("a source (stdin or tcp) or --config is required")
    else:
        config = create_default_config()

    if args.command == 'stdin':
        config.sources = [SourceConfig()]
    elif args.command == 'tcp':
        config.sources = [SourceConfig(
            name=f"{args.host}:{args.port}",
            type='tcp',
            host=args.host,
            port=args.port,
            format=args.format,
        )]

    if args.expire is not None:
        config.tracking.expire_sec = args.expire
    if args.refresh is not None:
        config.tracking.refresh_interval_sec = args.refresh
    if args.no_crc:
        config.tracking.crc_validation = False
    if args.log_level:
        config.logging.level = args.log_level
    if args.log_file:
        config.logging.log_file = args.log_file

    ConfigManager.validate_config(config)
    return config


def build_source(source_config: SourceConfig) -> MessageSource:
    if source_config.type == 'tcp':
        return NetworkSource(
            source_config.name,
            source_config.host,
            source_config.port,
            format_type=source_config.format,
            connect_timeout=source_config.connect_timeout_sec,
        )
    return StdinSource(source_config.name)


def run(config: TrackerConfig, renderer: Optional[TableRenderer] = None,
        tracker: Optional[AircraftTracker] = None) -> int:
    """
    Start one ingestion worker per source plus the render loop

    A source ending, for any reason, is a failure of its worker.

    Returns:
        Process exit status: 1 if any thread failed, 0 on Ctrl-C
    """
    if tracker is None:
        tracker = AircraftTracker()
    workers = [
        IngestionWorker(build_source(source), tracker,
                        MessageDecoder(crc_validation=config.tracking.crc_validation))
        for source in config.sources
    ]
    render_loop = RenderLoop(
        tracker,
        renderer,
        expire_sec=config.tracking.expire_sec,
        refresh_interval_sec=config.tracking.refresh_interval_sec,
        stats_interval_sec=config.logging.stats_interval_sec,
    )

    for worker in workers:
        worker.start()
    render_loop.start()

    try:
        while True:
            if render_loop.error is not None:
                return 1

            failed = [worker for worker in workers if worker.failed]
            if failed:
                for worker in failed:
                    logger.error(f"Source {worker.source.name} failed: {worker.error}")
                render_loop.stop()
                render_loop.join()
                # Show what was gathered before the failure
                if render_loop.error is None:
                    render_loop.render_once()
                return 1

            time.sleep(SUPERVISE_INTERVAL_SEC)

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 0
    finally:
        render_loop.stop()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        parser.error(str(e))

    setup_logging(config.logging.level, config.logging.log_file,
                  config.logging.max_log_size_mb, config.logging.backup_count)
    logger.info(f"Starting flight tracker with {len(config.sources)} source(s)")

    sys.exit(run(config))

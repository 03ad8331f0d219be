"""
=============================================================================
TIME SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:8086, UTC timestamps)
    python -m timeserver

    # Local time with offset: 2021-08-16 18:27:51 -0400
    python -m timeserver --format local

    # Local time with zone name: 2021-08-16 18:27:51 (EDT)
    python -m timeserver --format local-zone

    # Then, from another terminal:
    nc localhost 8086

There is intentionally no --port or --host: the time server lives on
8086. Ctrl+C (SIGINT) or SIGTERM stops it cleanly with exit status 0.
A failure to bind exits with status 1.
=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .errors import TimeServerError
from .formats import TimestampFormat
from .server import TimeServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeserver",
        description="Sequential TCP time server: one line per connection, then close",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m timeserver                      # UTC: 2021-08-16T23:25:39z
  python -m timeserver --format local       # 2021-08-16 18:27:51 -0400
  python -m timeserver --format local-zone  # 2021-08-16 18:27:51 (EDT)
        """
    )

    parser.add_argument(
        "--format", "-f",
        dest="timestamp_format",
        choices=[fmt.value for fmt in TimestampFormat],
        default=None,
        help="Timestamp format sent to clients (default: $TIMESERVER_FORMAT or utc)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: $TIMESERVER_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"timeserver {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status: 0 after a clean stop, 1 on a fatal error.
    """
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.timestamp_format:
        config.timestamp_format = TimestampFormat.from_name(args.timestamp_format)
    if args.log_level:
        config.log_level = args.log_level

    # Ctrl+C / SIGTERM → finish the current client, release the port, exit 0
    config.handle_signals = True

    try:
        server = TimeServer(config)
        server.run()
    except (TimeServerError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
=============================================================================
AESDSOCKET CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:9000, /var/tmp/aesdsocketdata)
    python -m aesdsocket

    # Custom port and data file
    python -m aesdsocket --port 9001 --data-file /tmp/records

    # Console logging only, verbose
    python -m aesdsocket --no-syslog --log-level DEBUG

Exit status:
    0   orderly shutdown after SIGINT/SIGTERM
    1   setup failed (socket, bind, listen, signal registration)
    2   invalid arguments or configuration
=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .log_config import configure_logging
from .server import RecordLogServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser; defaults come from the environment."""
    parser = argparse.ArgumentParser(
        prog="aesdsocket",
        description="Append-and-echo TCP record log server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m aesdsocket                            # Run with defaults
  python -m aesdsocket --port 9001                # Custom port
  python -m aesdsocket --data-file /tmp/records   # Custom log file
  python -m aesdsocket --no-syslog                # Console logging only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--backlog", "-b",
        type=int,
        default=defaults.backlog,
        help=f"Listen backlog (default: {defaults.backlog})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--data-file", "-f",
        default=defaults.data_file,
        help=f"Append-only log file, removed on exit (default: {defaults.data_file})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--no-syslog",
        dest="syslog",
        action="store_false",
        default=defaults.syslog,
        help="Log to the console only"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"aesdsocket {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """
    Main CLI entry point.

    1. Read defaults from the environment
    2. Override them with command-line arguments
    3. Configure logging
    4. Run the server until SIGINT/SIGTERM
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"aesdsocket: invalid environment: {e}", file=sys.stderr)
        return 2

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        backlog=args.backlog,
        buffer_size=defaults.buffer_size,
        read_chunk_size=defaults.read_chunk_size,
        data_file=args.data_file,
        poll_interval=defaults.poll_interval,
        log_level=args.log_level,
        syslog=args.syslog,
        syslog_address=defaults.syslog_address,
    )

    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    configure_logging(config)

    server = RecordLogServer(config)
    return server.run()


if __name__ == "__main__":
    sys.exit(main())

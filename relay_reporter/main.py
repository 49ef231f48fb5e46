#!/usr/bin/env python3
"""
Relay Reporter - Entry Point

Polls a Syncthing relay status page and writes the counters to InfluxDB
on a fixed interval until SIGHUP, SIGINT, SIGTERM or SIGQUIT.

Usage:
    relay-reporter --relay-url http://relay:22070/status \\
        --influxdb-url http://influx:8086 --influxdb-database relays
    relay-reporter --config reporter.yaml --debug
"""

import argparse
import asyncio
import sys

from relay_reporter import __version__
from relay_reporter.common.config import (
    ReporterConfig,
    build_config,
    load_config_file,
    parse_bool,
)
from relay_reporter.common.exceptions import ReporterError
from relay_reporter.common.logging_setup import get_service_logger, setup_logging
from relay_reporter.services.reporter.service import ReporterService

logger = get_service_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relay-reporter",
        description="Forward Syncthing relay status metrics to InfluxDB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Required options may also come from --config (YAML, same names with
underscores). InfluxDB credentials fall back to the INFLUXDB_USERNAME and
INFLUXDB_PASSWORD environment variables.
        """,
    )

    # Defaults of None mean "not given" so the config file can fill them in
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Boolean to toggle debug output mode.",
    )
    parser.add_argument(
        "--rate-multiplier",
        type=float,
        help="Multiplier * 1 second, how often values are fetched and uploaded to the database (default: 1).",
    )
    parser.add_argument(
        "--relay-url",
        help="Required syncthing relay url to fetch updates from.",
    )
    parser.add_argument(
        "--relay-name",
        help="Optional syncthing relay name to make it possible to view multiple relays "
             "with a single database and/or dashboard (default: default-relay).",
    )
    parser.add_argument(
        "--influxdb-url",
        help="Required influxdb url to push updates to.",
    )
    parser.add_argument(
        "--influxdb-database",
        help="Required InfluxDB database name to write values to.",
    )
    parser.add_argument(
        "--influxdb-username",
        help="Optional InfluxDB database username, if one is set.",
    )
    parser.add_argument(
        "--influxdb-password",
        help="Optional InfluxDB database password, if one is set.",
    )
    parser.add_argument(
        "--config", "-c",
        help="Optional YAML file with option values; command line flags take precedence.",
    )
    parser.add_argument(
        "--http-timeout",
        type=float,
        help="Seconds before an HTTP request is abandoned (default: 10).",
    )
    parser.add_argument(
        "--shutdown-grace",
        type=float,
        help="Seconds to wait for in-flight reports on shutdown (default: 5).",
    )
    parser.add_argument(
        "--health-port",
        type=int,
        help="Serve GET /health on 127.0.0.1 at this port (default: 0, disabled).",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        help="Console log format (default: RELAY_REPORTER_LOG_FORMAT or text).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"relay-reporter {__version__}",
    )
    return parser


def load_configuration(argv: list[str] | None = None) -> ReporterConfig:
    """
    Parse arguments, configure logging and build the configuration.

    Raises:
        ConfigError: missing required option or invalid value
    """
    args = build_parser().parse_args(argv)
    cli = vars(args).copy()
    config_path = cli.pop("config")

    # Logging goes first so config warnings reach the console
    debug = bool(args.debug)
    log_format = args.log_format
    file_values: dict = {}
    try:
        if config_path:
            file_values = load_config_file(config_path)
            debug = debug or parse_bool(file_values.get("debug") or False, "debug")
            log_format = log_format or file_values.get("log_format")
    finally:
        setup_logging(
            log_level="DEBUG" if debug else None,
            json_format=None if log_format is None else str(log_format).lower() == "json",
        )

    return build_config(cli, file_values)


async def main_async(service: ReporterService) -> None:
    """Run the reporter until a shutdown signal arrives."""
    try:
        await service.run()
    except Exception as e:
        logger.critical(f"Reporter failed: {e}")
        raise


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    try:
        config = load_configuration(argv)
        service = ReporterService(config)
        service.check_connectivity()
    except ReporterError as e:
        logger.critical(e.message)
        sys.exit(1)

    try:
        asyncio.run(main_async(service))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    main()

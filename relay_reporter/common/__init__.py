"""
Common Utilities

Shared modules used by the reporter services:
- config.py - Startup configuration
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- scheduler.py - Interval scheduler with task dispatch
"""

from .config import (
    ReporterConfig,
    build_config,
    load_config_file,
    normalize_base_url,
    parse_bool,
)
from .exceptions import (
    ReporterError,
    ConfigError,
    ConnectivityError,
    RelayFetchError,
    RelayStatusError,
    InfluxWriteError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    log_report,
)
from .scheduler import ScheduledLoop

__all__ = [
    # Config
    "ReporterConfig",
    "build_config",
    "load_config_file",
    "normalize_base_url",
    "parse_bool",
    # Exceptions
    "ReporterError",
    "ConfigError",
    "ConnectivityError",
    "RelayFetchError",
    "RelayStatusError",
    "InfluxWriteError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "log_report",
    # Scheduling
    "ScheduledLoop",
]

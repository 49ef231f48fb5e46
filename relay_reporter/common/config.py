"""
Reporter Configuration

Immutable configuration resolved once at startup from CLI flags, an optional
YAML file and environment fallbacks for the InfluxDB credentials.
"""

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

import yaml

from .exceptions import ConfigError
from .logging_setup import get_service_logger

logger = get_service_logger("config")

DEFAULT_RATE_MULTIPLIER = 1.0
DEFAULT_RELAY_NAME = "default-relay"
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_SHUTDOWN_GRACE = 5.0
DEFAULT_LOG_FORMAT = "text"

USERNAME_ENV = "INFLUXDB_USERNAME"
PASSWORD_ENV = "INFLUXDB_PASSWORD"

# Options accepted in the YAML file
FILE_KEYS = frozenset((
    "debug",
    "rate_multiplier",
    "relay_url",
    "relay_name",
    "influxdb_url",
    "influxdb_database",
    "influxdb_username",
    "influxdb_password",
    "http_timeout",
    "shutdown_grace",
    "health_port",
    "log_format",
))


def normalize_base_url(url: str) -> str:
    """Return url with exactly one trailing slash."""
    return url.rstrip("/") + "/"


@dataclass(frozen=True)
class ReporterConfig:
    """Startup configuration, read-only for the lifetime of the process"""
    relay_url: str
    influxdb_url: str
    influxdb_database: str
    relay_name: str = DEFAULT_RELAY_NAME
    influxdb_username: str = ""
    influxdb_password: str = ""
    rate_multiplier: float = DEFAULT_RATE_MULTIPLIER
    debug: bool = False
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    shutdown_grace: float = DEFAULT_SHUTDOWN_GRACE
    health_port: int = 0
    log_format: str = DEFAULT_LOG_FORMAT

    @property
    def interval_seconds(self) -> float:
        """Poll period: multiplier * 1 second"""
        return self.rate_multiplier * 1.0

    @property
    def health_url(self) -> str:
        return self.influxdb_url + "health"

    @property
    def write_url(self) -> str:
        return self.influxdb_url + "write?" + urlencode({"db": self.influxdb_database})

    @property
    def authorization_header(self) -> str:
        # Sent even when both credentials are empty ("Token :")
        return f"Token {self.influxdb_username}:{self.influxdb_password}"

    def redacted(self) -> dict[str, Any]:
        """Config as a dict with the password masked, for debug output"""
        data = asdict(self)
        if data["influxdb_password"]:
            data["influxdb_password"] = "********"
        return data


def load_config_file(config_path: str) -> dict[str, Any]:
    """
    Load option values from a YAML file.

    Args:
        config_path: Path to a YAML mapping of option names to values

    Returns:
        Mapping of option name to value (unknown keys dropped)

    Raises:
        ConfigError: file missing, unreadable or not a mapping
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}", option="config")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading configuration file {config_path}: {e}", option="config")

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping", option="config")

    # Accept both relay_url and relay-url spellings
    values = {}
    unknown = []
    for key, value in data.items():
        option = str(key).replace("-", "_")
        if option in FILE_KEYS:
            values[option] = value
        else:
            unknown.append(str(key))

    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")

    return values


TRUE_STRINGS = frozenset(("1", "true", "yes", "on"))
FALSE_STRINGS = frozenset(("0", "false", "no", "off", ""))


def parse_bool(value: Any, option: str) -> bool:
    """
    Interpret a boolean option value.

    Accepts real booleans and the usual true/false spellings, so a quoted
    YAML "false" stays false.

    Raises:
        ConfigError: value is neither a bool nor a recognised string
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ConfigError(f"Expected true or false for {option}, got {value!r}", option=option)


def _pick(name: str, cli: dict[str, Any], file_values: dict[str, Any], default: Any = None) -> Any:
    value = cli.get(name)
    if value is not None:
        return value
    value = file_values.get(name)
    if value is not None:
        return value
    return default


def build_config(
    cli: dict[str, Any],
    file_values: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> ReporterConfig:
    """
    Resolve, validate and normalize the reporter configuration.

    Precedence is CLI value, then config file value, then environment
    (credentials only), then the built-in default. CLI values of None mean
    "not given".

    Raises:
        ConfigError: a required option is missing or a value is invalid
    """
    file_values = file_values or {}
    environ = os.environ if environ is None else environ

    relay_url = _pick("relay_url", cli, file_values, "")
    if not relay_url:
        raise ConfigError(
            "No Syncthing relay URL found! Set with the --relay-url= argument.",
            option="relay_url",
        )

    influxdb_url = _pick("influxdb_url", cli, file_values, "")
    if not influxdb_url:
        raise ConfigError(
            "No InfluxDB URL found! Set with the --influxdb-url= argument.",
            option="influxdb_url",
        )

    influxdb_database = _pick("influxdb_database", cli, file_values, "")
    if not influxdb_database:
        raise ConfigError(
            "No InfluxDB database found! Set with the --influxdb-database= argument.",
            option="influxdb_database",
        )

    try:
        rate_multiplier = float(_pick("rate_multiplier", cli, file_values, DEFAULT_RATE_MULTIPLIER))
        http_timeout = float(_pick("http_timeout", cli, file_values, DEFAULT_HTTP_TIMEOUT))
        shutdown_grace = float(_pick("shutdown_grace", cli, file_values, DEFAULT_SHUTDOWN_GRACE))
        health_port = int(_pick("health_port", cli, file_values, 0))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric option: {e}")

    if rate_multiplier <= 0:
        raise ConfigError(
            f"Rate multiplier must be greater than 0, got {rate_multiplier}",
            option="rate_multiplier",
        )
    if http_timeout <= 0:
        raise ConfigError(f"HTTP timeout must be greater than 0, got {http_timeout}", option="http_timeout")
    if shutdown_grace < 0:
        raise ConfigError(f"Shutdown grace must not be negative, got {shutdown_grace}", option="shutdown_grace")
    if not 0 <= health_port <= 65535:
        raise ConfigError(f"Health port out of range: {health_port}", option="health_port")

    log_format = str(_pick("log_format", cli, file_values, DEFAULT_LOG_FORMAT)).lower()
    if log_format not in ("text", "json"):
        raise ConfigError(f"Unknown log format: {log_format}", option="log_format")

    config = ReporterConfig(
        relay_url=str(relay_url),
        relay_name=str(_pick("relay_name", cli, file_values, DEFAULT_RELAY_NAME)),
        influxdb_url=normalize_base_url(str(influxdb_url)),
        influxdb_database=str(influxdb_database),
        influxdb_username=str(_pick("influxdb_username", cli, file_values, environ.get(USERNAME_ENV, ""))),
        influxdb_password=str(_pick("influxdb_password", cli, file_values, environ.get(PASSWORD_ENV, ""))),
        rate_multiplier=rate_multiplier,
        debug=parse_bool(_pick("debug", cli, file_values, False), "debug"),
        http_timeout=http_timeout,
        shutdown_grace=shutdown_grace,
        health_port=health_port,
        log_format=log_format,
    )

    warn_defaults(config)
    return config


def warn_defaults(config: ReporterConfig) -> None:
    """Log non-fatal warnings for options left at their defaults."""
    if config.debug:
        logger.debug(f"Configuration: {config.redacted()}")

    if config.rate_multiplier == DEFAULT_RATE_MULTIPLIER:
        logger.warning("Rate multiplier at the default value of 1! Set with the --rate-multiplier= argument.")
    if config.relay_name == DEFAULT_RELAY_NAME:
        logger.warning(
            f"No Syncthing relay name found! Using the default name '{DEFAULT_RELAY_NAME}'. "
            "Set with the --relay-name= argument."
        )
    if not config.influxdb_username:
        logger.warning("No InfluxDB username found! If needed, set with the --influxdb-username= argument.")
    if not config.influxdb_password:
        logger.warning("No InfluxDB password found! If needed, set with the --influxdb-password= argument.")

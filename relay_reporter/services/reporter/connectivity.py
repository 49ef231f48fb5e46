"""
Startup Connection Test

One synchronous request to each endpoint before the poll loop starts. Any
failure here is fatal; there are no retries.
"""

import json

import httpx

from relay_reporter.common.exceptions import ConnectivityError
from relay_reporter.common.logging_setup import get_service_logger
from relay_reporter.services.influxdb.client import InfluxDBClient
from relay_reporter.services.relay.client import RelayClient

logger = get_service_logger("reporter.connectivity")

URL_HINT = 'Is the url in the correct form: "<https/http>://<domain/ip>:<port>/status" ?'


def check_relay(relay_client: RelayClient) -> None:
    """Raise ConnectivityError unless the relay answers with HTTP 200."""
    url = relay_client.status_url
    try:
        response = relay_client.probe()
    except httpx.HTTPError as e:
        raise ConnectivityError(
            f"Initial Syncthing relay server load failed ({e!r}). {URL_HINT}",
            target="relay",
            url=url,
        ) from e

    if response.status_code != 200:
        raise ConnectivityError(
            f"Syncthing relay server was reached but the HTTP status code was "
            f"{response.status_code}, not 200! {URL_HINT}",
            target="relay",
            url=url,
        )
    logger.info("Syncthing relay connection check successful.")


def check_influxdb(influx_client: InfluxDBClient) -> bool:
    """
    Check the InfluxDB health endpoint.

    Returns:
        True if the reported health status is "pass". A different status is
        logged as an error but does not stop startup.

    Raises:
        ConnectivityError: unreachable, non-200 or unreadable health payload
    """
    url = influx_client.config.health_url
    try:
        response = influx_client.health()
    except httpx.HTTPError as e:
        raise ConnectivityError(
            f"Initial InfluxDB server load failed ({e!r}). {URL_HINT}",
            target="influxdb",
            url=url,
        ) from e

    if response.status_code != 200:
        raise ConnectivityError(
            f"InfluxDB server was reached but the HTTP status code was "
            f"{response.status_code}, not 200! {URL_HINT}",
            target="influxdb",
            url=url,
        )

    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConnectivityError(
            f"InfluxDB health response is not valid JSON: {e}",
            target="influxdb",
            url=url,
        ) from e

    status = payload.get("status") if isinstance(payload, dict) else None
    if status != "pass":
        logger.error(
            f"InfluxDB health check was not a pass! (status: {status!r})",
            extra={"health_status": status},
        )
        return False

    logger.info("InfluxDB connection check successful.")
    return True


def check_connectivity(relay_client: RelayClient, influx_client: InfluxDBClient) -> bool:
    """Run both startup checks. Returns the InfluxDB health verdict."""
    logger.info("Starting connection tests.")
    check_relay(relay_client)
    return check_influxdb(influx_client)

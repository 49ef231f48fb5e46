"""Shared test fixtures for all test modules."""

import json
import logging
from collections.abc import Callable

import httpx
import pytest

from relay_reporter.common.config import ReporterConfig
from relay_reporter.common.logging_setup import ROOT_LOGGER_NAME

RELAY_URL = "http://relay.test:22070/status"
INFLUX_URL = "http://influx.test:8086/"


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() so caplog keeps receiving records."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def relay_payload() -> dict:
    """A relay /status body as served by strelaysrv."""
    return {
        "bytesProxied": 123456789,
        "uptimeSeconds": 3600,
        "kbps10s1m5m15m30m60m": [10.5, 20, 30.25, 0, 5.5, 6],
        "numActiveSessions": 4,
        "numConnections": 12,
        "numPendingSessionKeys": 1,
        "numProxies": 8,
        "goVersion": "go1.21.0",
        "options": {"network-timeout": 120},
    }


@pytest.fixture
def config() -> ReporterConfig:
    """Configuration pointing at the fake endpoints."""
    return ReporterConfig(
        relay_url=RELAY_URL,
        relay_name="relay-one",
        influxdb_url=INFLUX_URL,
        influxdb_database="relays",
        influxdb_username="alice",
        influxdb_password="secret",
        rate_multiplier=0.5,
        shutdown_grace=1.0,
    )


class FakeEndpoints:
    """Routes requests for the fake relay and InfluxDB and records them."""

    def __init__(self, relay_payload: dict):
        self.relay_body: bytes = json.dumps(relay_payload).encode()
        self.relay_status = 200
        self.health_body: bytes = json.dumps({"status": "pass", "version": "2.7.1"}).encode()
        self.health_status = 200
        self.write_status = 204
        self.write_body = b""
        self.fail_relay: Exception | None = None
        self.fail_write: Exception | None = None
        self.requests: list[httpx.Request] = []

    def writes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == RELAY_URL:
            if self.fail_relay is not None:
                raise self.fail_relay
            return httpx.Response(self.relay_status, content=self.relay_body)

        if url == INFLUX_URL + "health":
            return httpx.Response(self.health_status, content=self.health_body)

        if request.method == "POST" and url.startswith(INFLUX_URL + "write"):
            if self.fail_write is not None:
                raise self.fail_write
            return httpx.Response(self.write_status, content=self.write_body)

        return httpx.Response(404)


@pytest.fixture
def endpoints(relay_payload: dict) -> FakeEndpoints:
    return FakeEndpoints(relay_payload)


@pytest.fixture
def transport(endpoints: FakeEndpoints) -> httpx.MockTransport:
    return httpx.MockTransport(endpoints)


@pytest.fixture
def fixed_clock() -> Callable[[], int]:
    return lambda: 1_700_000_000_000_000_000

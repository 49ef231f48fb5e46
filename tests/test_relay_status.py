"""Tests for relay status parsing and line protocol formatting."""

import json

import pytest

from relay_reporter.common.exceptions import RelayStatusError
from relay_reporter.services.influxdb.line_protocol import (
    FIELD_ORDER,
    format_metric_line,
    format_value,
)
from relay_reporter.services.relay.models import RelayStatus

TIMESTAMP = 1_700_000_000_123_456_789


class TestRelayStatusParsing:
    def test_parses_expected_fields(self, relay_payload: dict) -> None:
        status = RelayStatus.from_json(json.dumps(relay_payload))

        assert status.bytes_proxied == 123456789
        assert status.uptime_seconds == 3600
        assert status.kbps == [10.5, 20, 30.25, 0, 5.5, 6]
        assert status.active_sessions == 4
        assert status.connections == 12
        assert status.pending_session_keys == 1
        assert status.proxies == 8

    def test_rates_keyed_by_window(self, relay_payload: dict) -> None:
        status = RelayStatus.from_json(json.dumps(relay_payload))

        assert status.rates() == {
            "10s": 10.5, "1m": 20, "5m": 30.25, "15m": 0, "30m": 5.5, "60m": 6,
        }

    def test_missing_rates_field(self, relay_payload: dict) -> None:
        del relay_payload["kbps10s1m5m15m30m60m"]

        with pytest.raises(RelayStatusError) as exc_info:
            RelayStatus.from_json(json.dumps(relay_payload))

        assert "kbps10s1m5m15m30m60m" in exc_info.value.fields

    @pytest.mark.parametrize("rates", [[1, 2, 3, 4, 5], [1, 2, 3, 4, 5, 6, 7], []])
    def test_wrong_rate_arity(self, relay_payload: dict, rates: list) -> None:
        relay_payload["kbps10s1m5m15m30m60m"] = rates

        with pytest.raises(RelayStatusError):
            RelayStatus.from_json(json.dumps(relay_payload))

    @pytest.mark.parametrize(
        "field, value",
        [
            ("bytesProxied", "12"),
            ("numProxies", 1.5),
            ("numConnections", None),
            ("kbps10s1m5m15m30m60m", "fast"),
        ],
    )
    def test_wrong_json_type(self, relay_payload: dict, field: str, value) -> None:
        relay_payload[field] = value

        with pytest.raises(RelayStatusError) as exc_info:
            RelayStatus.from_json(json.dumps(relay_payload))

        assert exc_info.value.recoverable is True

    def test_invalid_json(self) -> None:
        with pytest.raises(RelayStatusError):
            RelayStatus.from_json(b"<html>502 Bad Gateway</html>")


class TestFormatValue:
    @pytest.mark.parametrize(
        "value, expected",
        [(0, "0"), (0.0, "0"), (42, "42"), (6.0, "6"), (10.5, "10.5"), (0.1, "0.1")],
    )
    def test_renders_numbers(self, value, expected: str) -> None:
        assert format_value(value) == expected

    def test_rejects_nan(self) -> None:
        with pytest.raises(ValueError):
            format_value(float("nan"))


class TestFormatMetricLine:
    def test_exact_line(self, relay_payload: dict) -> None:
        status = RelayStatus.from_json(json.dumps(relay_payload))

        line = format_metric_line(status, "relay-one", TIMESTAMP)

        assert line == (
            "relay-one,relay=relay-one "
            "bytesProxied=123456789,uptime=3600,"
            "kbps10s=10.5,kbps1m=20,kbps5m=30.25,kbps15m=0,kbps30m=5.5,kbps60m=6,"
            "activeSessions=4,connections=12,pendingSessionKeys=1,proxies=8 "
            "1700000000123456789"
        )

    def test_is_deterministic(self, relay_payload: dict) -> None:
        status = RelayStatus.from_json(json.dumps(relay_payload))

        first = format_metric_line(status, "relay-one", TIMESTAMP)
        second = format_metric_line(status, "relay-one", TIMESTAMP)

        assert first == second

    def test_field_order(self, relay_payload: dict) -> None:
        status = RelayStatus.from_json(json.dumps(relay_payload))

        fields = format_metric_line(status, "r", TIMESTAMP).split(" ")[1]
        keys = tuple(pair.split("=")[0] for pair in fields.split(","))

        assert keys == FIELD_ORDER
        assert keys == (
            "bytesProxied", "uptime",
            "kbps10s", "kbps1m", "kbps5m", "kbps15m", "kbps30m", "kbps60m",
            "activeSessions", "connections", "pendingSessionKeys", "proxies",
        )

    def test_escapes_relay_name(self, relay_payload: dict) -> None:
        status = RelayStatus.from_json(json.dumps(relay_payload))

        line = format_metric_line(status, "eu west,1", TIMESTAMP)

        assert line.startswith("eu\\ west\\,1,relay=eu\\ west\\,1 bytesProxied=")

"""
InfluxDB Line Protocol Formatting

Builds the single line written per tick:

    <relay>,relay=<relay> bytesProxied=..,uptime=..,kbps10s=..,...,proxies=.. <ns>

Field order is fixed; dashboards built on the measurement depend on it.
"""

import math

from relay_reporter.services.relay.models import RATE_WINDOWS, RelayStatus

FIELD_ORDER = (
    "bytesProxied",
    "uptime",
    *(f"kbps{window}" for window in RATE_WINDOWS),
    "activeSessions",
    "connections",
    "pendingSessionKeys",
    "proxies",
)


def escape_measurement(value: str) -> str:
    return value.replace(",", "\\,").replace(" ", "\\ ")


def escape_tag(value: str) -> str:
    """Escape a tag key or tag value."""
    return value.replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def format_value(value: int | float) -> str:
    """
    Render a numeric field value.

    Integral floats lose their fractional part so 0.0 is written as 0.
    No integer suffix is added; InfluxDB stores every field as a float.
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot write non-finite value {value!r}")
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def status_fields(status: RelayStatus) -> list[tuple[str, int | float]]:
    """Field name/value pairs in write order"""
    fields: list[tuple[str, int | float]] = [
        ("bytesProxied", status.bytes_proxied),
        ("uptime", status.uptime_seconds),
    ]
    fields.extend((f"kbps{window}", rate) for window, rate in status.rates().items())
    fields.extend([
        ("activeSessions", status.active_sessions),
        ("connections", status.connections),
        ("pendingSessionKeys", status.pending_session_keys),
        ("proxies", status.proxies),
    ])
    return fields


def format_metric_line(status: RelayStatus, relay_name: str, timestamp_ns: int) -> str:
    """Format one relay snapshot as a line protocol record."""
    fields = ",".join(f"{key}={format_value(value)}" for key, value in status_fields(status))
    return f"{escape_measurement(relay_name)},relay={escape_tag(relay_name)} {fields} {timestamp_ns}"

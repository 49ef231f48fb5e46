"""
Relay Status Model

Typed view of the Syncthing relay /status JSON. Only the fields forwarded to
InfluxDB are declared; everything else in the payload is ignored.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from relay_reporter.common.exceptions import RelayStatusError

# Bandwidth windows in the order the relay reports them
RATE_WINDOWS = ("10s", "1m", "5m", "15m", "30m", "60m")


class RelayStatus(BaseModel):
    """One snapshot of relay counters"""

    model_config = ConfigDict(strict=True, populate_by_name=True, frozen=True)

    bytes_proxied: int = Field(alias="bytesProxied")
    uptime_seconds: int = Field(alias="uptimeSeconds")
    kbps: Annotated[
        list[float],
        Field(alias="kbps10s1m5m15m30m60m", min_length=6, max_length=6),
    ]
    active_sessions: int = Field(alias="numActiveSessions")
    connections: int = Field(alias="numConnections")
    pending_session_keys: int = Field(alias="numPendingSessionKeys")
    proxies: int = Field(alias="numProxies")

    @classmethod
    def from_json(cls, body: str | bytes) -> "RelayStatus":
        """
        Parse a relay status response body.

        Raises:
            RelayStatusError: body is not JSON or does not match the schema
        """
        try:
            return cls.model_validate_json(body)
        except ValidationError as e:
            fields = [".".join(str(p) for p in err["loc"]) or "<root>" for err in e.errors()]
            raise RelayStatusError(
                f"{e.error_count()} invalid field(s): {', '.join(fields)}",
                fields=fields,
            ) from e

    def rates(self) -> dict[str, float]:
        """Bandwidth samples keyed by window name"""
        return dict(zip(RATE_WINDOWS, self.kbps))

"""
Relay Status Client

Reads the relay status page over HTTP. The async path is used once per tick;
the sync probe is used by the startup connection test.
"""

import httpx

from relay_reporter.common.exceptions import RelayFetchError
from relay_reporter.common.logging_setup import get_service_logger

from .models import RelayStatus

logger = get_service_logger("relay.client")


class RelayClient:
    """HTTP client for one relay status endpoint"""

    def __init__(
        self,
        status_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | httpx.BaseTransport | None = None,
    ):
        self.status_url = status_url
        self.timeout = timeout
        self._transport = transport

    async def fetch_body(self) -> bytes:
        """
        GET the status page.

        Raises:
            RelayFetchError: transport failure or non-2xx response
        """
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(self.status_url)
        except httpx.HTTPError as e:
            raise RelayFetchError(f"request failed: {e!r}", url=self.status_url) from e

        logger.debug(f"Relay responded HTTP {response.status_code} ({len(response.content)} bytes)")

        if not response.is_success:
            raise RelayFetchError(
                f"HTTP {response.status_code}",
                url=self.status_url,
                status_code=response.status_code,
            )
        return response.content

    async def fetch_status(self) -> RelayStatus:
        """Fetch and parse one status snapshot."""
        body = await self.fetch_body()
        return RelayStatus.from_json(body)

    def probe(self) -> httpx.Response:
        """Synchronous GET used by the startup connection test."""
        with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
            return client.get(self.status_url)

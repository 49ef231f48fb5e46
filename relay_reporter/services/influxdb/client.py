"""
InfluxDB HTTP Client

Writes line protocol to the v1-compatible /write endpoint and reads /health
for the startup connection test.
"""

import httpx

from relay_reporter.common.config import ReporterConfig
from relay_reporter.common.exceptions import InfluxWriteError
from relay_reporter.common.logging_setup import get_service_logger

logger = get_service_logger("influxdb.client")


class InfluxDBClient:
    """Writes metric lines to one InfluxDB database"""

    def __init__(
        self,
        config: ReporterConfig,
        transport: httpx.AsyncBaseTransport | httpx.BaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": self.config.authorization_header,
            "Content-Type": "text/plain; charset=utf-8",
        }

    async def write(self, line: str) -> httpx.Response:
        """
        POST one line protocol record.

        Raises:
            InfluxWriteError: transport failure or non-2xx response
        """
        url = self.config.write_url
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.config.http_timeout) as client:
                response = await client.post(url, content=line.encode("utf-8"), headers=self.headers)
        except httpx.HTTPError as e:
            raise InfluxWriteError(f"request failed: {e!r}", url=url) from e

        if self.config.debug:
            logger.debug(f"InfluxDB request body: {line}")
            logger.debug(f"InfluxDB full URL: {url}")
            logger.debug(f"InfluxDB write request response body:\n{response.text}")

        if not response.is_success:
            raise InfluxWriteError(
                f"HTTP {response.status_code}: {response.text.strip()[:200]}",
                url=url,
                status_code=response.status_code,
            )
        return response

    def health(self) -> httpx.Response:
        """Synchronous GET of the health endpoint."""
        with httpx.Client(transport=self._transport, timeout=self.config.http_timeout) as client:
            return client.get(self.config.health_url)

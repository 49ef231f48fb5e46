"""
Report Task

One fetch -> parse -> format -> write pass, launched once per tick. Every
failure ends the tick with a log entry; nothing propagates to the scheduler.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from relay_reporter.common.exceptions import ReporterError
from relay_reporter.common.logging_setup import get_service_logger, log_report
from relay_reporter.services.influxdb.client import InfluxDBClient
from relay_reporter.services.influxdb.line_protocol import format_metric_line
from relay_reporter.services.relay.client import RelayClient

logger = get_service_logger("reporter.task")


@dataclass
class ReportStats:
    """Outcome counters shared by all report tasks of one service"""
    succeeded: int = 0
    failed: int = 0
    last_success_at: datetime | None = None
    last_error: str | None = None

    def as_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
        }


class ReportTask:
    """Callable that performs one report pass per invocation"""

    def __init__(
        self,
        relay_name: str,
        relay_client: RelayClient,
        influx_client: InfluxDBClient,
        clock_ns: Callable[[], int] = time.time_ns,
        stats: ReportStats | None = None,
    ):
        self.relay_name = relay_name
        self.relay_client = relay_client
        self.influx_client = influx_client
        self.clock_ns = clock_ns
        self.stats = stats or ReportStats()

    async def __call__(self) -> bool:
        """
        Run one report pass.

        Returns:
            True if the line was written, False if any stage failed
        """
        start = time.monotonic()
        try:
            status = await self.relay_client.fetch_status()
            line = format_metric_line(status, self.relay_name, self.clock_ns())
            await self.influx_client.write(line)
        except ReporterError as e:
            self._record_failure(e.message)
            log_report(logger, self.relay_name, False, (time.monotonic() - start) * 1000, e.message)
            return False
        except Exception as e:
            self._record_failure(repr(e))
            logger.exception(f"Unexpected error in report for {self.relay_name}: {e!r}")
            return False

        self.stats.succeeded += 1
        self.stats.last_success_at = datetime.now(timezone.utc)
        log_report(logger, self.relay_name, True, (time.monotonic() - start) * 1000)
        return True

    def _record_failure(self, error: str) -> None:
        self.stats.failed += 1
        self.stats.last_error = error

"""
Reporter Service

Runs the poll-report loop until a termination signal arrives:
- Dispatches one ReportTask per tick through ScheduledLoop
- Maps SIGHUP, SIGINT, SIGTERM and SIGQUIT to a shutdown event
- Drains in-flight tasks for a bounded grace period on shutdown
- Optionally serves GET /health on 127.0.0.1
"""

import asyncio
import signal
from datetime import datetime, timezone

import httpx
from aiohttp import web

from relay_reporter.common.config import ReporterConfig
from relay_reporter.common.logging_setup import get_service_logger
from relay_reporter.common.scheduler import ScheduledLoop
from relay_reporter.services.influxdb.client import InfluxDBClient
from relay_reporter.services.relay.client import RelayClient

from .connectivity import check_connectivity
from .task import ReportTask

logger = get_service_logger("reporter")

SHUTDOWN_SIGNALS = tuple(
    sig for sig in (
        getattr(signal, "SIGHUP", None),
        signal.SIGINT,
        signal.SIGTERM,
        getattr(signal, "SIGQUIT", None),
    )
    if sig is not None
)


class ReporterService:
    """Poll-report loop for one relay and one database"""

    def __init__(
        self,
        config: ReporterConfig,
        transport: httpx.AsyncBaseTransport | httpx.BaseTransport | None = None,
    ):
        self.config = config

        self.relay_client = RelayClient(
            config.relay_url,
            timeout=config.http_timeout,
            transport=transport,
        )
        self.influx_client = InfluxDBClient(config, transport=transport)
        self.report_task = ReportTask(config.relay_name, self.relay_client, self.influx_client)
        self.scheduler = ScheduledLoop(config.interval_seconds, self.report_task, name="reporter")

        # Health server
        self._health_runner: web.AppRunner | None = None

        self._shutdown_event = asyncio.Event()
        self._installed_signals: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, object] = {}
        self._started_at: datetime | None = None

    def check_connectivity(self) -> bool:
        """Synchronous startup connection test; raises ConnectivityError."""
        return check_connectivity(self.relay_client, self.influx_client)

    async def start(self) -> None:
        """Start the loop and block until shutdown is requested."""
        logger.info(
            f"Starting reporter for relay '{self.config.relay_name}' "
            f"(interval: {self.config.interval_seconds}s)",
            extra={"relay": self.config.relay_name, "interval_s": self.config.interval_seconds},
        )
        self._started_at = datetime.now(timezone.utc)

        self._setup_signal_handlers()

        if self.config.health_port:
            await self._start_health_server()

        await self.scheduler.start()

        # Wait for shutdown
        await self._shutdown_event.wait()
        logger.info("Shutting down reporter ticker.")

    async def stop(self) -> None:
        """Stop scheduling, then drain in-flight reports."""
        self.scheduler.stop()

        cancelled = await self.scheduler.drain(self.config.shutdown_grace)
        if cancelled:
            logger.warning(f"{cancelled} report(s) did not finish within {self.config.shutdown_grace}s")

        await self._stop_health_server()
        self._remove_signal_handlers()

        logger.info("Reporter stopped", extra={"reports": self.report_task.stats.as_dict()})

    async def run(self) -> None:
        """start() then stop(), even if start() fails."""
        try:
            await self.start()
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        """Ask the loop to stop; safe to call more than once."""
        if not self._shutdown_event.is_set():
            logger.info("Shutdown signal caught, shutting down gracefully.")
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running and not self._shutdown_event.is_set()

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
                self._installed_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows, or not running in the main thread
                try:
                    self._previous_handlers[sig] = signal.signal(
                        sig, lambda s, f: loop.call_soon_threadsafe(self.request_shutdown)
                    )
                except ValueError:
                    logger.warning(f"Cannot install handler for {sig.name}")

    def _remove_signal_handlers(self) -> None:
        if self._installed_signals:
            loop = asyncio.get_running_loop()
            for sig in self._installed_signals:
                loop.remove_signal_handler(sig)
            self._installed_signals.clear()

        # Handlers replaced through signal.signal() go back to what they were
        for sig, previous in self._previous_handlers.items():
            signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
        self._previous_handlers.clear()

    async def _start_health_server(self) -> None:
        """Start the health check HTTP server"""
        app = web.Application()
        app.router.add_get("/health", self._health_handler)

        self._health_runner = web.AppRunner(app)
        await self._health_runner.setup()

        site = web.TCPSite(self._health_runner, "127.0.0.1", self.config.health_port)
        await site.start()

        logger.info(f"Health server started on port {self.config.health_port}")

    async def _stop_health_server(self) -> None:
        """Stop the health check HTTP server"""
        if self._health_runner:
            await self._health_runner.cleanup()
            self._health_runner = None

    def health_payload(self) -> dict:
        now = datetime.now(timezone.utc)
        uptime = (now - self._started_at).total_seconds() if self._started_at else 0
        return {
            "status": "healthy" if self.is_running else "stopping",
            "service": "reporter",
            "relay": self.config.relay_name,
            "uptime": round(uptime, 1),
            "timestamp": now.isoformat(),
            "scheduler": self.scheduler.get_stats(),
            "reports": self.report_task.stats.as_dict(),
        }

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Handle health check requests"""
        return web.json_response(self.health_payload())

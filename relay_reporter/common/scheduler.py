"""
Interval Scheduler with Fire-and-Forget Dispatch

Provides ScheduledLoop, which launches a coroutine as an independent task at
interval boundaries. Only the first tick is aligned to the wall clock; later
deadlines follow the monotonic clock. The loop never awaits the tasks it
launches, so a slow tick cannot delay the next one.

Usage:
    async def report():
        ...

    scheduler = ScheduledLoop(0.5, report, name="reporter")
    await scheduler.start()

    # Later:
    scheduler.stop()
    await scheduler.drain(timeout=5.0)
"""

import asyncio
import time
from typing import Awaitable, Callable

from .logging_setup import get_service_logger

logger = get_service_logger("scheduler")


class ScheduledLoop:
    """
    Interval scheduler that dispatches one task per tick.

    Ticks fire at multiples of the interval. If the event loop falls behind,
    missed ticks are skipped rather than queued.

    There is no bound on how many dispatched tasks may be in flight at once.

    Attributes:
        interval: Seconds between ticks (sub-second supported)
        callback: Coroutine function launched on each tick
        in_flight: Handles of dispatched tasks that have not finished
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "unnamed",
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self.interval = interval_seconds
        self.callback = callback
        self.name = name

        self._next_run: float = 0
        self._running = False
        self._task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

        # Observability metrics
        self._drift_total: float = 0
        self._last_drift_ms: float = 0
        self._skipped_count: int = 0
        self._dispatch_count: int = 0
        self._failed_count: int = 0
        self._cancelled_count: int = 0

    async def start(self) -> None:
        """Start the scheduled loop in a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"scheduler:{self.name}")

    def stop(self) -> None:
        """Stop scheduling new ticks. In-flight tasks keep running."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    async def drain(self, timeout: float) -> int:
        """
        Wait for in-flight tasks to finish, cancelling any left after timeout.

        Returns:
            Number of tasks that had to be cancelled
        """
        pending = set(self._in_flight)
        if not pending:
            return 0

        logger.info(f"Waiting up to {timeout:.1f}s for {len(pending)} in-flight task(s)")
        if timeout > 0:
            _, pending = await asyncio.wait(pending, timeout=timeout)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"Cancelled {len(pending)} in-flight task(s) of '{self.name}'")

        return len(pending)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> frozenset[asyncio.Task]:
        return frozenset(self._in_flight)

    async def _run(self) -> None:
        """Main loop that dispatches the callback at exact intervals."""
        # Align first run to the next wall-clock boundary; deadlines are monotonic
        wall = time.time()
        first_delay = ((wall // self.interval) + 1) * self.interval - wall
        self._next_run = time.monotonic() + first_delay

        while self._running:
            sleep_duration = self._next_run - time.monotonic()
            if sleep_duration > 0:
                try:
                    await asyncio.sleep(sleep_duration)
                except asyncio.CancelledError:
                    break

            if not self._running:
                break

            # Track drift (how late we are)
            drift = time.monotonic() - self._next_run
            if drift > 30:
                # Event loop stalled (suspend/resume), not real drift
                logger.info(
                    f"Scheduler '{self.name}' stall detected ({drift:.0f}s), realigning"
                )
                self._last_drift_ms = 0
            else:
                self._drift_total += max(0, drift)
                self._last_drift_ms = drift * 1000

            self._dispatch()

            # Skip missed intervals to catch up (don't queue up missed ticks)
            now = time.monotonic()
            skipped = 0
            while self._next_run <= now:
                self._next_run += self.interval
                skipped += 1

            # First skip is the tick we just dispatched
            if skipped > 1:
                self._skipped_count += skipped - 1
                logger.warning(f"Scheduler '{self.name}' skipped {skipped - 1} intervals")

    def _dispatch(self) -> None:
        self._dispatch_count += 1
        task = asyncio.create_task(
            self.callback(), name=f"{self.name}:{self._dispatch_count}"
        )
        self._in_flight.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            self._cancelled_count += 1
            return
        exc = task.exception()
        if exc is not None:
            self._failed_count += 1
            logger.error(
                f"Scheduled task '{task.get_name()}' error: {exc}",
                exc_info=exc,
            )

    @property
    def dispatch_count(self) -> int:
        """Total number of dispatched tasks."""
        return self._dispatch_count

    def get_stats(self) -> dict:
        """Get scheduler statistics for observability."""
        return {
            "name": self.name,
            "interval_s": self.interval,
            "running": self._running,
            "dispatch_count": self._dispatch_count,
            "in_flight": len(self._in_flight),
            "failed_count": self._failed_count,
            "cancelled_count": self._cancelled_count,
            "drift_total_s": round(self._drift_total, 3),
            "drift_last_ms": round(self._last_drift_ms, 1),
            "skipped_count": self._skipped_count,
        }

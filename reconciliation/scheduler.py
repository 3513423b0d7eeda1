"""
Reconciliation scheduler for periodic drift detection.

Runs inside the service's asyncio loop. A fixed-delay ticker task waits
``interval`` seconds after each run finishes before starting the next one,
and a one-off warm-up run fires ``warmup_delay`` seconds after start so the
first check does not compete with process startup.

Scheduled runs are gated by a single in-flight lock: a tick requested while
another is still in progress is skipped outright, so at most one scheduled
run talks to the vendor platform at a time.
"""

import asyncio
import threading
from typing import Optional, TYPE_CHECKING

from reconciliation.models import RunSummary, VerificationResult
from validation.config import DriftConfig

if TYPE_CHECKING:
    from reconciliation.engine import DriftDetectionEngine

from shared.log import create_logger
log_debug, log_info, _, log_error = create_logger("Scheduler")


class VerificationInProgressError(Exception):
    """A manual check was refused because a scheduled run is in flight."""
    pass


class DriftScheduler:
    """Owns the periodic timer, the in-flight guard and the manual path.

    Constructed and started by the composition root; nothing runs at import.

    Args:
        engine: DriftDetectionEngine that performs each run
        config: DriftConfig (defaults to the engine's config)
    """

    def __init__(self, engine: "DriftDetectionEngine", config: Optional[DriftConfig] = None):
        self.engine = engine
        self.config = config or engine.config
        self.interval: Optional[float] = None
        # Non-blocking acquire is atomic across tasks and threads.
        self._in_flight = threading.Lock()
        self._ticker: Optional[asyncio.Task] = None
        self._warmup: Optional[asyncio.Task] = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._ticker is not None

    @property
    def tick_in_flight(self) -> bool:
        return self._in_flight.locked()

    @property
    def last_summary(self) -> Optional[RunSummary]:
        return self.engine.reporter.last_summary

    def start(self, interval: Optional[float] = None) -> None:
        """Arm the periodic ticker and the warm-up run.

        Must be called from within a running event loop. Calling it again
        while already running logs and does nothing.

        Args:
            interval: Seconds between runs (default: config.interval)

        Raises:
            ValueError: interval is not positive
        """
        if self._ticker is not None:
            log_info("Job already running")
            return

        interval = interval if interval is not None else self.config.interval
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        loop = asyncio.get_running_loop()

        log_info(
            f"Starting verification job with {self.interval}s interval",
            interval=self.interval,
            warmup_delay=self.config.warmup_delay,
        )
        self._ticker = loop.create_task(self._run_ticker(self.interval))
        self._warmup = loop.create_task(self._run_warmup(self.config.warmup_delay))

    def stop(self) -> None:
        """Cancel the timer. A tick already in progress runs to completion."""
        if self._ticker is None:
            return

        self._ticker.cancel()
        self._ticker = None
        if self._warmup is not None:
            self._warmup.cancel()
            self._warmup = None
        log_info("Job stopped")

    async def wait_idle(self) -> None:
        """Wait for ticks that were already running when stop() was called.

        Call after stop() and before closing the collaborators a tick uses.
        """
        if self._ticks:
            log_debug(f"Waiting for {len(self._ticks)} in-flight tick(s)")
            await asyncio.gather(*self._ticks, return_exceptions=True)

    async def tick(self) -> bool:
        """Run one scheduled verification pass unless one is already in flight.

        Returns:
            True if the run executed, False if it was skipped.
        """
        if not self._in_flight.acquire(blocking=False):
            log_info("Previous tick still running, skipping")
            return False

        try:
            await self.engine.run(trigger="scheduled")
        except Exception as e:
            # Run-level failure (e.g. store listing). Next interval retries.
            log_error(f"Tick error: {e}", error=str(e))
        finally:
            self._in_flight.release()
        return True

    async def verify_now(self) -> list[VerificationResult]:
        """Run the pipeline immediately and return the raw results.

        In "concurrent" mode (default) the in-flight guard is not taken, so a
        manual check may overlap a scheduled run; the queue deduplicates any
        repeated re-sync submissions. In "exclusive" mode the guard is taken
        without waiting and VerificationInProgressError is raised if a
        scheduled run holds it.

        Raises:
            VerificationInProgressError: exclusive mode and a run is in flight
            Exception: store listing failures propagate to the caller
        """
        if self.config.manual_verify_mode != "exclusive":
            results, _ = await self.engine.run(trigger="manual")
            return results

        if not self._in_flight.acquire(blocking=False):
            raise VerificationInProgressError("A scheduled verification run is in progress")
        try:
            results, _ = await self.engine.run(trigger="manual")
        finally:
            self._in_flight.release()
        return results

    async def _run_ticker(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._shielded_tick()

    async def _run_warmup(self, delay: float) -> None:
        await asyncio.sleep(delay)
        log_debug("Running warm-up verification")
        await self._shielded_tick()

    async def _shielded_tick(self) -> None:
        # stop() cancels the timer task, not the run it is waiting on.
        task = asyncio.ensure_future(self.tick())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        await asyncio.shield(task)

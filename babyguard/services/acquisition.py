"""
Acquisition loop: polls the sensor, normalizes readings and feeds the
deduplicator, while tracking connectivity and latency for the host.

Scheduling model:
- One asyncio task per running loop; ticks run to completion in sequence
- Fixed interval measured from tick start, no backoff after failures
- ``refresh_once`` goes through the same acquire path as a periodic tick
- ``stop`` cancels a sleeping task; a tick with a fetch in flight, or one
  waiting on the deduplicator, finishes but its result is dropped
  (generation token) and nothing is dispatched for it
- A source that raises is treated like one that returned an error
"""

import asyncio
import contextlib
import time
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from babyguard.config import MonitoringConfig
from babyguard.domain.errors import AcquisitionError
from babyguard.domain.models import ConnectionStatus, VitalReading
from babyguard.services.data_source import DataSource
from babyguard.services.deduplicator import AlertDeduplicator, ProcessedReading
from babyguard.services.normalizer import normalize_payload

logger = structlog.get_logger(__name__)


class AcquisitionLoop:
    """Timer-driven puller of sensor readings with a manual refresh override."""

    def __init__(
        self,
        source: DataSource,
        deduplicator: AlertDeduplicator,
        config: MonitoringConfig | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.source = source
        self.deduplicator = deduplicator
        self.config = config or MonitoringConfig()
        self.clock = clock
        self.logger = logger.bind(component="acquisition_loop", endpoint=source.endpoint)

        self._status = ConnectionStatus()
        self._last_processed: ProcessedReading | None = None
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self._busy: set[asyncio.Task[None]] = set()
        self._retiring: set[asyncio.Task[None]] = set()

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def last_processed(self) -> ProcessedReading | None:
        return self._last_processed

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling; an already running poller is stopped first."""
        if self._task is not None:
            stale = self._halt()
            if stale is not None:
                self._retiring.add(stale)
                stale.add_done_callback(self._retiring.discard)

        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation), name=f"acquisition-loop-{self._generation}"
        )
        self.logger.info(
            "acquisition_started", interval_seconds=self.config.poll_interval_seconds
        )

    async def stop(self, drain: bool = False) -> None:
        """
        Stop polling. No tick starts after this call.

        With ``drain`` the call also waits for an in-flight tick to finish
        discarding its result.
        """
        cancelled = self._halt()
        if cancelled is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await cancelled
        if drain and self._retiring:
            await asyncio.gather(*self._retiring, return_exceptions=True)
        self.logger.info("acquisition_stopped")

    def _halt(self) -> asyncio.Task[None] | None:
        """Invalidate the running task; returns it if it was cancelled."""
        task, self._task = self._task, None
        self._generation += 1
        if task is None or task.done():
            return None

        if task in self._busy:
            self._retiring.add(task)
            task.add_done_callback(self._retiring.discard)
            return None

        task.cancel()
        return task

    async def refresh_once(self) -> VitalReading | None:
        """Manual one-shot fetch and classify (pull-to-refresh)."""
        processed = await self._acquire(generation=None)
        return processed.reading if processed is not None else None

    async def _run(self, generation: int) -> None:
        task = asyncio.current_task()
        assert task is not None

        while generation == self._generation:
            tick_start = time.perf_counter()

            self._busy.add(task)
            try:
                await self._acquire(generation=generation)
            except Exception as e:
                self.logger.exception("acquisition_tick_crashed", error=str(e))
            finally:
                self._busy.discard(task)

            if generation != self._generation:
                break

            elapsed = time.perf_counter() - tick_start
            sleep_time = max(0.0, self.config.poll_interval_seconds - elapsed)
            if sleep_time == 0.0:
                self.logger.warning(
                    "acquisition_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.config.poll_interval_seconds,
                )
            await asyncio.sleep(sleep_time)

    async def _acquire(self, generation: int | None) -> ProcessedReading | None:
        """
        Fetch, normalize and forward one reading.

        ``generation`` is None for manual refreshes; for periodic ticks a
        mismatch after the fetch, or once the deduplicator lock is held,
        means the loop was stopped meanwhile.
        """
        manual = generation is None
        started = time.perf_counter()
        try:
            result = await self.source.fetch_latest()
        except Exception as e:
            if not self._is_current(generation):
                return None
            self.logger.exception("sensor_fetch_crashed", error=str(e))
            self._mark_disconnected(str(e) or type(e).__name__, manual)
            return None
        latency_ms = (time.perf_counter() - started) * 1000.0

        if not self._is_current(generation):
            self.logger.debug("tick_result_discarded", generation=generation)
            return None

        try:
            reading = normalize_payload(
                result.unwrap(), observed_at=self.clock(), last_known=self._status.last_reading
            )
        except AcquisitionError as e:
            self._mark_disconnected(e.reason, manual)
            return None

        self._status = ConnectionStatus(
            connected=True,
            message="Connected - manual" if manual else "Connected",
            latency_ms=round(latency_ms, 3),
            last_reading=reading,
            updated_at=self.clock(),
        )
        processed = await self.deduplicator.process(
            reading, still_current=lambda: self._is_current(generation)
        )
        if processed.discarded or not self._is_current(generation):
            self.logger.debug("tick_result_discarded", generation=generation)
            return None
        self._last_processed = processed
        return processed

    def _is_current(self, generation: int | None) -> bool:
        """Manual refreshes are always current; a tick only while its loop runs."""
        return generation is None or generation == self._generation

    def _mark_disconnected(self, reason: str, manual: bool) -> None:
        self.logger.warning("acquisition_failed", reason=reason, manual=manual)
        self._status = ConnectionStatus(
            connected=False,
            message="Refresh failed" if manual else "Disconnected",
            latency_ms=None,
            last_error=reason,
            last_reading=self._status.last_reading,
            updated_at=self.clock(),
        )

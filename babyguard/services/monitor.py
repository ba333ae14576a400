"""
Monitoring service that wires the complete vital-sign pipeline together.

Pipeline: sensor -> acquisition loop -> classifier -> deduplicator ->
dispatcher -> notification sink.

Every collaborator is constructed explicitly (or injected), so several
monitors, one per baby, can run side by side without shared state.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from types import TracebackType

import structlog

from babyguard.config import AppConfig, get_config
from babyguard.domain.models import ConnectionProbe, ConnectionStatus, VitalReading
from babyguard.domain.thresholds import BandsInput, ThresholdBand, ThresholdTable
from babyguard.services.acquisition import AcquisitionLoop
from babyguard.services.cooldown import CooldownRegistry
from babyguard.services.data_source import DataSource, HttpDataSource
from babyguard.services.deduplicator import AlertDeduplicator
from babyguard.services.dispatcher import (
    AlertDispatcher,
    ConsoleNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
)

logger = structlog.get_logger(__name__)


class VitalMonitor:
    """
    Host-facing configuration surface of the monitoring core.

    Exposes cooldown and threshold configuration, alert-history reset,
    start/stop of the acquisition loop, manual refresh and connection tests.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        source: DataSource | None = None,
        sink: NotificationSink | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="vital_monitor")

        self.source: DataSource = source or HttpDataSource(self.config.sensor)
        self._owns_source = source is None

        self.threshold_table = ThresholdTable()
        self.registry = CooldownRegistry()
        self.dispatcher = AlertDispatcher(sink or LoggingNotificationSink(), self.config.alerts)
        self.deduplicator = AlertDeduplicator(
            thresholds=self.threshold_table,
            registry=self.registry,
            dispatcher=self.dispatcher,
            cooldown=timedelta(seconds=self.config.alerts.cooldown_seconds),
            clock=clock,
            attention_vibration=self.config.alerts.attention_vibration,
        )
        self.loop = AcquisitionLoop(self.source, self.deduplicator, self.config.monitoring, clock)

        self.logger.info(
            "vital_monitor_initialized",
            endpoint=self.source.endpoint,
            cooldown_seconds=self.config.alerts.cooldown_seconds,
        )

    @property
    def status(self) -> ConnectionStatus:
        return self.loop.status

    @property
    def is_running(self) -> bool:
        return self.loop.is_running

    def set_cooldown(self, duration_seconds: float) -> None:
        self.deduplicator.set_cooldown(duration_seconds)

    def replace_thresholds(self, table: BandsInput) -> None:
        """Swap the whole threshold table. Raises UnknownMetric on a bad table."""
        self.threshold_table.replace_all(table)
        self.logger.info("thresholds_replaced")

    def thresholds(self) -> dict[str, ThresholdBand]:
        """Copy of the current table keyed by metric name; edit it and pass it back."""
        return {metric.value: band for metric, band in self.threshold_table.snapshot().items()}

    def clear_alert_history(self) -> None:
        self.deduplicator.clear_history()

    def start(self) -> None:
        self.loop.start()

    async def stop(self) -> None:
        """Gracefully stop the monitoring service."""
        self.logger.info("stopping_vital_monitor")
        await self.loop.stop(drain=True)

    async def refresh_once(self) -> VitalReading | None:
        return await self.loop.refresh_once()

    async def test_connection(self) -> ConnectionProbe:
        """Probe the sensor; restarts polling when the sensor answers."""
        if isinstance(self.source, HttpDataSource):
            probe = await self.source.probe()
        else:
            try:
                result = await self.source.fetch_latest()
            except Exception as e:
                self.logger.exception("connection_test_crashed", error=str(e))
                message = str(e) or type(e).__name__
                probe = ConnectionProbe(
                    connected=False, message=message, endpoint=self.source.endpoint
                )
            else:
                probe = ConnectionProbe(
                    connected=result.is_ok(),
                    message="Sensor connected" if result.is_ok() else str(result.unwrap_err()),
                    endpoint=self.source.endpoint,
                )

        self.logger.info("connection_tested", connected=probe.connected, message=probe.message)
        if probe.connected:
            self.start()
        return probe

    async def aclose(self) -> None:
        await self.stop()
        if self._owns_source and isinstance(self.source, HttpDataSource):
            await self.source.aclose()

    async def __aenter__(self) -> "VitalMonitor":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def main() -> None:
    """Poll the configured sensor and print alerts to the console."""
    from babyguard.observability import configure_logging

    config = get_config()
    configure_logging(config.logging)

    async with VitalMonitor(config, sink=ConsoleNotificationSink()) as monitor:
        try:
            while True:
                await asyncio.sleep(config.monitoring.poll_interval_seconds)
                status = monitor.status
                logger.info(
                    "monitor_status",
                    connected=status.connected,
                    message=status.message,
                    latency_ms=status.latency_ms,
                )
        except asyncio.CancelledError:
            logger.info("monitoring_cancelled")
            raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nMonitoring stopped by user")

"""Window orchestration: collect, aggregate, persist, wait."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Protocol

from datastore.postgres import PersistenceError, PostgresStore
from models.records import WindowAggregate
from services.aggregator import Aggregator
from services.collector import Collector
from services.scanner import BeaconScanner
from services.shutdown import ShutdownRequested, ShutdownSignal
from settings import Settings

logger = logging.getLogger(__name__)


class AggregateStore(Protocol):
    async def store_sensor_data(self, sensor_mac: str, aggregate: WindowAggregate) -> int:
        ...

    async def store_movement_data(self, sensor_mac: str, aggregate: WindowAggregate) -> int:
        ...


class WindowPipeline:
    """Coordinates the collector, aggregator and store for each window."""

    def __init__(
        self,
        collector: Collector,
        aggregator: Aggregator,
        store: AggregateStore,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.collector = collector
        self.aggregator = aggregator
        self.store = store
        self._clock = clock
        self._sleep = sleep

    @property
    def window_seconds(self) -> float:
        return self.collector.window_seconds

    async def run_forever(self) -> None:
        logger.info("Starting RuuviTag data collection service")
        try:
            while True:
                await self.run_cycle()
        except ShutdownRequested:
            logger.info("Shutdown requested; discarding the current window")

    async def run_cycle(self) -> Dict[str, WindowAggregate]:
        started = self._clock()
        logger.info("Starting collection interval")
        measurements = await self.collector.collect_window(started)
        logger.info("Collection interval complete")

        aggregates = self.aggregator.aggregate(measurements, self.collector.tags)
        for sensor_mac, aggregate in aggregates.items():
            await self.persist(sensor_mac, aggregate)

        for sensor_mac, aggregate in aggregates.items():
            self._log_summary(sensor_mac, aggregate)
        if not aggregates:
            logger.warning("No data collected during this interval")

        elapsed = self._clock() - started
        if elapsed < self.window_seconds:
            wait = self.window_seconds - elapsed
            logger.info("Waiting until next collection interval", extra={"wait_s": round(wait, 1)})
            await self._sleep(wait)
        return aggregates

    async def persist(self, sensor_mac: str, aggregate: WindowAggregate) -> Dict[str, bool]:
        """Store both channels independently; one failing never skips the other."""
        outcome: Dict[str, bool] = {}
        channels = (
            ("sensor_data", self.store.store_sensor_data),
            ("movement_data", self.store.store_movement_data),
        )
        for table, store_call in channels:
            extra = {"sensor_mac": sensor_mac, "sensor_name": aggregate.name, "table": table}
            try:
                attempts = await store_call(sensor_mac, aggregate)
            except PersistenceError as exc:
                logger.error(
                    "Failed to store %s",
                    table,
                    extra={**extra, "attempt": exc.attempts, "reason": exc.reason},
                )
                outcome[table] = False
            else:
                logger.info("Stored %s", table, extra={**extra, "attempt": attempts})
                outcome[table] = True
        return outcome

    @staticmethod
    def _log_summary(sensor_mac: str, aggregate: WindowAggregate) -> None:
        logger.info(
            "Summary for %s: temperature=%.2fC humidity=%.2f%% pressure=%.2fhPa "
            "acceleration=(%.3f, %.3f, %.3f)g movement_delta=%d",
            aggregate.name,
            aggregate.temperature,
            aggregate.humidity,
            aggregate.pressure,
            aggregate.acceleration_x,
            aggregate.acceleration_y,
            aggregate.acceleration_z,
            aggregate.movement_delta,
            extra={"sensor_mac": sensor_mac, "samples": aggregate.samples},
        )


def build_default_pipeline(settings: Settings, shutdown: ShutdownSignal) -> WindowPipeline:
    """Wire the production scanner, collector, aggregator and store."""
    scanner = BeaconScanner(settings.tags)
    collector = Collector(
        scanner=scanner,
        tags=settings.tags,
        window_seconds=settings.window_seconds,
        poll_interval_seconds=settings.poll_interval_seconds,
        scan_duration_seconds=settings.scan_duration_seconds,
        sleep=shutdown.sleep,
        after_scan=shutdown.check,
    )
    store = PostgresStore(
        settings.database_url,
        max_attempts=settings.db_max_attempts,
        retry_delay_seconds=settings.db_retry_delay_seconds,
        sleep=shutdown.sleep,
    )
    return WindowPipeline(collector, Aggregator(), store, sleep=shutdown.sleep)

"""Timed poll loop that accumulates readings for one collection window."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Mapping, Optional

from models.records import SensorReading
from services.decoder import decode_format5
from services.scanner import ScanError, Scanner

logger = logging.getLogger(__name__)

Measurements = Dict[str, List[SensorReading]]


class Collector:
    """Runs scan passes until the window elapses, grouping readings per device.

    ``clock`` and ``sleep`` are injectable so the loop can run on simulated
    time; in production ``sleep`` is the shutdown-aware sleep.
    """

    def __init__(
        self,
        scanner: Scanner,
        tags: Mapping[str, str],
        window_seconds: float = 1800.0,
        poll_interval_seconds: float = 30.0,
        scan_duration_seconds: float = 20.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        after_scan: Optional[Callable[[], None]] = None,
    ) -> None:
        self.scanner = scanner
        self.tags = tags
        self.window_seconds = window_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.scan_duration_seconds = scan_duration_seconds
        self._clock = clock
        self._sleep = sleep
        self._after_scan = after_scan

    async def collect_window(self, started: Optional[float] = None) -> Measurements:
        """Collect until ``window_seconds`` have passed since ``started``."""
        if started is None:
            started = self._clock()
        measurements: Measurements = {}

        while self._clock() - started < self.window_seconds:
            await self.poll_once(measurements)
            if self._after_scan is not None:
                self._after_scan()

            remaining = self.window_seconds - (self._clock() - started)
            if remaining <= 0:
                break
            pause = min(self.poll_interval_seconds - self.scan_duration_seconds, remaining)
            if pause > 0:
                await self._sleep(pause)

        return measurements

    async def poll_once(self, measurements: Measurements) -> int:
        """Run one scan pass, returning how many readings were accepted."""
        try:
            advertisements = await self.scanner.scan(self.scan_duration_seconds)
        except ScanError as exc:
            logger.error("Scan failed: %s", exc)
            return 0

        accepted = 0
        for advertisement in advertisements:
            address = advertisement.address.upper()
            if address not in self.tags:
                continue
            reading = decode_format5(advertisement.payload)
            if reading is None:
                continue
            measurements.setdefault(address, []).append(reading)
            accepted += 1
            logger.debug(
                "Received data: temp=%.2fC humidity=%.2f%% pressure=%.2fhPa",
                reading.temperature,
                reading.humidity,
                reading.pressure,
                extra={"sensor_mac": address},
            )
        return accepted

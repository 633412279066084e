"""Aggregation logic for a window of sensor readings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Sequence

from models.records import (
    ACCELERATION_DECIMALS,
    HUMIDITY_DECIMALS,
    PRESSURE_DECIMALS,
    TEMPERATURE_DECIMALS,
    UNKNOWN_SENSOR_NAME,
    SensorReading,
    WindowAggregate,
    round_half_away,
)

MOVEMENT_COUNTER_BITS = 8


def wrapping_delta(first: int, last: int, bits: int = MOVEMENT_COUNTER_BITS) -> int:
    """Forward distance from ``first`` to ``last`` on a ``bits``-wide counter."""
    return (last - first) % (1 << bits)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _mean(values: Sequence[float], decimals: int) -> float:
    return round_half_away(sum(values) / len(values), decimals)


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock

    def aggregate(
        self,
        measurements: Mapping[str, Sequence[SensorReading]],
        tags: Mapping[str, str],
    ) -> Dict[str, WindowAggregate]:
        aggregates: Dict[str, WindowAggregate] = {}
        for sensor_mac, readings in measurements.items():
            if not readings:
                continue
            aggregates[sensor_mac] = self.summarize(
                readings, tags.get(sensor_mac, UNKNOWN_SENSOR_NAME)
            )
        return aggregates

    def summarize(self, readings: Sequence[SensorReading], name: str) -> WindowAggregate:
        """Average one device's readings; movement uses the first and last sample."""
        return WindowAggregate(
            temperature=_mean([r.temperature for r in readings], TEMPERATURE_DECIMALS),
            humidity=_mean([r.humidity for r in readings], HUMIDITY_DECIMALS),
            pressure=_mean([r.pressure for r in readings], PRESSURE_DECIMALS),
            acceleration_x=_mean([r.acceleration_x for r in readings], ACCELERATION_DECIMALS),
            acceleration_y=_mean([r.acceleration_y for r in readings], ACCELERATION_DECIMALS),
            acceleration_z=_mean([r.acceleration_z for r in readings], ACCELERATION_DECIMALS),
            movement_delta=wrapping_delta(
                readings[0].movement_counter, readings[-1].movement_counter
            ),
            time=self._clock(),
            name=name,
            samples=len(readings),
        )

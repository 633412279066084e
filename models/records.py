"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

TEMPERATURE_DECIMALS = 2
HUMIDITY_DECIMALS = 2
PRESSURE_DECIMALS = 2
ACCELERATION_DECIMALS = 3

UNKNOWN_SENSOR_NAME = "Unknown"


def round_half_away(value: float, decimals: int) -> float:
    """Round to ``decimals`` places, ties away from zero."""
    factor = 10 ** decimals
    return math.copysign(math.floor(abs(value) * factor + 0.5), value) / factor


@dataclass(frozen=True, slots=True)
class RawAdvertisement:
    """Manufacturer payload seen for one device during a scan pass."""

    address: str
    payload: bytes


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single decoded RuuviTag data format 5 advertisement."""

    temperature: float
    humidity: float
    pressure: float
    acceleration_x: float
    acceleration_y: float
    acceleration_z: float
    movement_counter: int


@dataclass(frozen=True, slots=True)
class WindowAggregate:
    """Per-device summary of every reading collected in one window."""

    temperature: float
    humidity: float
    pressure: float
    acceleration_x: float
    acceleration_y: float
    acceleration_z: float
    movement_delta: int
    time: datetime
    name: str
    samples: int

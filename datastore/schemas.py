"""Pydantic schemas for the rows written to PostgreSQL."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field

from models.records import WindowAggregate


class SensorDataRow(BaseModel):
    """Atmospheric averages for one sensor and window (``sensor_data`` table)."""

    model_config = ConfigDict(frozen=True)

    sensor_mac: str = Field(..., min_length=1)
    temperature: float
    humidity: float = Field(..., ge=0.0, le=100.0)
    pressure: float = Field(..., gt=0.0)
    time: datetime
    name: str
    samples: int = Field(..., ge=1)

    @classmethod
    def from_aggregate(cls, sensor_mac: str, aggregate: WindowAggregate) -> "SensorDataRow":
        return cls(
            sensor_mac=sensor_mac,
            temperature=aggregate.temperature,
            humidity=aggregate.humidity,
            pressure=aggregate.pressure,
            time=aggregate.time,
            name=aggregate.name,
            samples=aggregate.samples,
        )

    def as_params(self) -> Tuple[Any, ...]:
        return (
            self.sensor_mac,
            self.temperature,
            self.humidity,
            self.pressure,
            self.time,
            self.name,
            self.samples,
        )


class MovementDataRow(BaseModel):
    """Acceleration averages and movement delta (``movement_data`` table)."""

    model_config = ConfigDict(frozen=True)

    sensor_mac: str = Field(..., min_length=1)
    acceleration_x: float
    acceleration_y: float
    acceleration_z: float
    movement_counter: int = Field(..., ge=0, le=255)
    time: datetime
    name: str
    samples: int = Field(..., ge=1)

    @classmethod
    def from_aggregate(cls, sensor_mac: str, aggregate: WindowAggregate) -> "MovementDataRow":
        return cls(
            sensor_mac=sensor_mac,
            acceleration_x=aggregate.acceleration_x,
            acceleration_y=aggregate.acceleration_y,
            acceleration_z=aggregate.acceleration_z,
            movement_counter=aggregate.movement_delta,
            time=aggregate.time,
            name=aggregate.name,
            samples=aggregate.samples,
        )

    def as_params(self) -> Tuple[Any, ...]:
        return (
            self.sensor_mac,
            self.acceleration_x,
            self.acceleration_y,
            self.acceleration_z,
            self.movement_counter,
            self.time,
            self.name,
            self.samples,
        )

"""RuuviTag data format 5 (RAWv2) decoding.

Layout of the 24-byte manufacturer payload, all fields big-endian:

==========  =====================================================
Offset      Field
==========  =====================================================
0           data format, always 5
1-2         temperature, int16, 0.005 degC
3-4         humidity, uint16, 0.0025 %RH
5-6         pressure, uint16, Pa minus 50000
7-12        acceleration X/Y/Z, int16 each, mg
13-14       battery voltage and TX power (not decoded)
15          movement counter, uint8
16-17       measurement sequence (not decoded)
18-23       MAC address (not decoded, taken from the advertisement)
==========  =====================================================
"""

from __future__ import annotations

import logging
import struct
from typing import Optional

from models.records import (
    ACCELERATION_DECIMALS,
    HUMIDITY_DECIMALS,
    PRESSURE_DECIMALS,
    TEMPERATURE_DECIMALS,
    SensorReading,
    round_half_away,
)

logger = logging.getLogger(__name__)

RUUVI_MANUFACTURER_ID = 0x0499
DATA_FORMAT = 5
PAYLOAD_LENGTH = 24

_MEASUREMENTS = struct.Struct(">hHHhhh")
_MOVEMENT_COUNTER_OFFSET = 15


def decode_format5(payload: bytes) -> Optional[SensorReading]:
    """Decode a format 5 payload, returning ``None`` when it is rejected.

    Empty payloads mean "nothing advertised" and are rejected quietly; any
    other malformed payload is logged.
    """
    if len(payload) != PAYLOAD_LENGTH or payload[0] != DATA_FORMAT:
        if payload:
            logger.warning(
                "Invalid RuuviTag data",
                extra={"payload_length": len(payload), "data_format": payload[0]},
            )
        return None

    try:
        raw_temp, raw_humidity, raw_pressure, raw_x, raw_y, raw_z = (
            _MEASUREMENTS.unpack_from(payload, 1)
        )
        humidity = min(raw_humidity * 0.0025, 100.0)
        return SensorReading(
            temperature=round_half_away(raw_temp * 0.005, TEMPERATURE_DECIMALS),
            humidity=round_half_away(humidity, HUMIDITY_DECIMALS),
            pressure=round_half_away((raw_pressure + 50000) / 100, PRESSURE_DECIMALS),
            acceleration_x=round_half_away(raw_x * 0.001, ACCELERATION_DECIMALS),
            acceleration_y=round_half_away(raw_y * 0.001, ACCELERATION_DECIMALS),
            acceleration_z=round_half_away(raw_z * 0.001, ACCELERATION_DECIMALS),
            movement_counter=payload[_MOVEMENT_COUNTER_OFFSET],
        )
    except (struct.error, ArithmeticError, ValueError) as exc:  # pragma: no cover - defensive
        logger.error("Error decoding format 5 data: %s", exc)
        return None

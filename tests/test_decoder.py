"""Unit tests for the format 5 decoder."""

from __future__ import annotations

import logging
import struct

import pytest

from models.records import SensorReading
from services.decoder import PAYLOAD_LENGTH, decode_format5

# Reference vector published with the RAWv2 format description.
_REFERENCE_PAYLOAD = bytes.fromhex("0512FC5394C37C0004FFFC040CAC364200CDCBB8334C884F")


def _payload(
    temperature: int = 0,
    humidity: int = 0,
    pressure: int = 0,
    acceleration: tuple[int, int, int] = (0, 0, 0),
    movement: int = 0,
    data_format: int = 5,
) -> bytes:
    return struct.pack(
        ">BhHHhhhHBH6s",
        data_format,
        temperature,
        humidity,
        pressure,
        *acceleration,
        0xAC36,
        movement,
        205,
        b"\xcb\xb8\x33\x4c\x88\x4f",
    )


def test_reference_payload_decodes_to_expected_values() -> None:
    reading = decode_format5(_REFERENCE_PAYLOAD)

    assert reading == SensorReading(
        temperature=24.3,
        humidity=53.49,
        pressure=1000.44,
        acceleration_x=0.004,
        acceleration_y=-0.004,
        acceleration_z=1.036,
        movement_counter=66,
    )


def test_helper_builds_full_length_payload() -> None:
    assert len(_payload()) == PAYLOAD_LENGTH


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(4006, 20.03), (-1000, -5.0), (-4006, -20.03), (0, 0.0)],
)
def test_temperature_is_signed_and_rounded(raw: int, expected: float) -> None:
    reading = decode_format5(_payload(temperature=raw))

    assert reading is not None
    assert reading.temperature == expected


@pytest.mark.parametrize(("raw", "expected"), [(40000, 100.0), (40400, 100.0), (65534, 100.0)])
def test_humidity_is_capped_at_one_hundred(raw: int, expected: float) -> None:
    reading = decode_format5(_payload(humidity=raw))

    assert reading is not None
    assert reading.humidity == expected


@pytest.mark.parametrize(("raw", "expected"), [(0, 500.0), (51325, 1013.25), (65534, 1155.34)])
def test_pressure_applies_offset_and_converts_to_hpa(raw: int, expected: float) -> None:
    reading = decode_format5(_payload(pressure=raw))

    assert reading is not None
    assert reading.pressure == expected


def test_acceleration_and_movement_counter() -> None:
    reading = decode_format5(_payload(acceleration=(-1000, 32767, 15), movement=255))

    assert reading is not None
    assert reading.acceleration_x == -1.0
    assert reading.acceleration_y == 32.767
    assert reading.acceleration_z == 0.015
    assert reading.movement_counter == 255


@pytest.mark.parametrize(
    "payload",
    [
        _REFERENCE_PAYLOAD[:-1],
        _REFERENCE_PAYLOAD + b"\x00",
        _payload(data_format=3),
        _payload(data_format=6),
    ],
)
def test_wrong_length_or_format_is_rejected(payload: bytes, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        assert decode_format5(payload) is None

    assert any("Invalid RuuviTag data" in record.getMessage() for record in caplog.records)


def test_empty_payload_is_rejected_without_warning(caplog) -> None:
    with caplog.at_level(logging.DEBUG):
        assert decode_format5(b"") is None

    assert not caplog.records

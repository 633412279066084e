from __future__ import annotations

from typing import Any, Iterable, Optional

import typer

from models.records import SensorReading


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: SensorReading, address: Optional[str] = None, name: Optional[str] = None) -> None:
    title = "Reading" if address is None else f"Reading from {name or address} ({address})"
    echo_heading(title)
    echo_key_values(
        [
            ("temperature", f"{reading.temperature:.2f} C"),
            ("humidity", f"{reading.humidity:.2f} %"),
            ("pressure", f"{reading.pressure:.2f} hPa"),
            ("acceleration_x", f"{reading.acceleration_x:.3f} g"),
            ("acceleration_y", f"{reading.acceleration_y:.3f} g"),
            ("acceleration_z", f"{reading.acceleration_z:.3f} g"),
            ("movement_counter", reading.movement_counter),
        ]
    )

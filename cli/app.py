from __future__ import annotations

import asyncio
from typing import Optional

import typer

from app.main import run_service
from cli.render import render_reading
from logging_config import configure_logging
from services.decoder import decode_format5
from services.scanner import BeaconScanner, ScanError
from settings import ConfigurationError, Settings, get_settings

app = typer.Typer(
    help="Collect RuuviTag readings over BLE and store windowed averages in PostgreSQL.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ConfigurationError as exc:
        typer.secho(f"Failed to load configuration: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command("run")
def run_command(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Run collection windows until interrupted."""
    settings = _load_settings()
    configure_logging((log_level or settings.log_level).upper())
    try:
        asyncio.run(run_service(settings))
    except KeyboardInterrupt:
        typer.echo("Program terminated by user. Exiting gracefully.")


@app.command("decode")
def decode_command(
    payload: str = typer.Argument(..., help="Format 5 manufacturer data as hex."),
) -> None:
    """Decode a single RuuviTag format 5 payload."""
    try:
        raw = bytes.fromhex(payload.strip().removeprefix("0x"))
    except ValueError as exc:
        raise typer.BadParameter(f"Payload is not valid hex: {exc}") from exc

    reading = decode_format5(raw)
    if reading is None:
        typer.secho("Payload rejected: not a 24-byte format 5 payload.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    render_reading(reading)


@app.command("scan")
def scan_command(
    duration: Optional[float] = typer.Option(
        None,
        "--duration",
        "-d",
        help="Seconds to scan (defaults to SCAN_DURATION_SECONDS env or 20).",
    ),
) -> None:
    """Perform one scan pass and print readings from registered sensors."""
    settings = _load_settings()
    configure_logging(settings.log_level)
    scanner = BeaconScanner(settings.tags)
    seconds = duration if duration is not None else settings.scan_duration_seconds
    typer.echo(f"Scanning for {seconds:g}s ...")
    try:
        advertisements = asyncio.run(scanner.scan(seconds))
    except ScanError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    found = 0
    for advertisement in advertisements:
        reading = decode_format5(advertisement.payload)
        if reading is None:
            continue
        found += 1
        render_reading(reading, advertisement.address, settings.sensor_name(advertisement.address))
    if not found:
        typer.secho("No registered sensors seen.", fg=typer.colors.YELLOW)

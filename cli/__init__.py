"""Command line interface for the RuuviTag collector; the Typer app lives in ``cli.app``."""

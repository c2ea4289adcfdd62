"""Common CLI options for the CLI."""

from pathlib import Path

import typer

ConfigOpt = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config.json (default: $METASYNC_CONFIG or ./config.json)",
)

LogLevelOpt = typer.Option(
    "INFO",
    "--log-level",
    help="Console log level (DEBUG, INFO, WARNING, ERROR)",
)

LogFileOpt = typer.Option(
    Path("debug.log"),
    "--log-file",
    help="File receiving the full debug log",
)

StrictOpt = typer.Option(
    None,
    "--strict/--lenient",
    help="Fail a type's pass when some bodies could not be fetched",
    show_default=False,
)

KeepWorkdirOpt = typer.Option(
    False,
    "--keep-workdir",
    help="Keep the temporary clone after the run",
)

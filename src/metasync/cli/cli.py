"""CLI application for catalog metadata mirroring."""

from pathlib import Path

import typer

from metasync.cli.commands.update import rules, update
from metasync.cli.common.context import build_context
from metasync.cli.common.options import ConfigOpt, LogFileOpt, LogLevelOpt
from metasync.cli.common.output import console
from metasync.core.logging_config import setup_logging

app = typer.Typer(
    help="metasync - mirror remote catalog metadata into a git repository",
    no_args_is_help=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    config: Path | None = ConfigOpt,
    log_level: str = LogLevelOpt,
    log_file: Path = LogFileOpt,
):
    """Configure logging and load rules once per invocation."""
    setup_logging(level=log_level, log_file=log_file, console=console)
    ctx.obj = build_context(config)


app.command("update", help="Build and update a given rule.")(update)
app.command("rules", help="List configured rules.")(rules)


if __name__ == "__main__":
    app()

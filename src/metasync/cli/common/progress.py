"""Progress formatting utilities for the CLI."""

from __future__ import annotations

from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from metasync.cli.common.output import console

_MAX_TYPE_NAME_WIDTH = 40


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _type_label(name: str | None) -> str:
    """Render the metadata type shown next to the bar (blank before the first type)."""
    if not name:
        return ""
    return _truncate(name, _MAX_TYPE_NAME_WIDTH)


class RichRunProgress:
    """
    Overall progress bar for a reconciliation run.

    One unit per configured type; hierarchy levels are not counted
    separately because their number is only known once the type is listed.
    """

    def __init__(self) -> None:
        self._progress = Progress(
            TextColumn("[bold]Fetching[/]"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[name]}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> "RichRunProgress":
        self._progress.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._progress.stop()

    def start(self, total: int) -> None:
        self._task = self._progress.add_task("run", total=max(total, 1), name="")

    def type_started(self, name: str) -> None:
        if self._task is not None:
            self._progress.update(self._task, name=_type_label(name))

    def type_finished(self, name: str) -> None:
        if self._task is not None:
            self._progress.advance(self._task, 1)

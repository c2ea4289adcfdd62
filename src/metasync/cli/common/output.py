"""Output formatting utilities for the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)

_STATUS_STYLES = {"SYNCED": "ok", "PARTIAL": "warn", "FAILED": "err"}


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def rules_table(self, rules: Iterable[Any], title: str = "Rules") -> None:
        """
        Expects objects with .name .origin_url .branch .metadata
        (like metasync.core.config.Rule)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Rule", style="ok", no_wrap=True)
        t.add_column("Origin")
        t.add_column("Branch", style="meta")
        t.add_column("Metadata types", style="meta")

        for r in rules:
            types = ", ".join(
                f"{m.name}*" if m.is_hierarchical else m.name for m in r.metadata
            )
            t.add_row(r.name, r.origin_url, r.branch, types)

        console.print(t)

    def pass_results_table(
        self, results: Iterable[Any], title: str = "Reconciliation"
    ) -> None:
        """
        Render one row per pass.

        Expects objects with `.key`, `.status`, the `.added` / `.removed` /
        `.changed` counts, `.failed_chunks` and an optional `.error`
        (e.g. metasync.core.models.PassResult).
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Type", style="ok")
        t.add_column("Added", justify="right")
        t.add_column("Deleted", justify="right")
        t.add_column("Changed", justify="right")
        t.add_column("Failed chunks", justify="right")
        t.add_column("Status")

        for r in results:
            status_value = r.status.value if hasattr(r.status, "value") else str(r.status)
            style = _STATUS_STYLES.get(status_value, "meta")
            status = f"[{style}]{status_value}[/{style}]"
            if getattr(r, "error", None):
                status = f"{status} {r.error}"
            t.add_row(
                str(r.key),
                str(r.added),
                str(r.removed),
                str(r.changed),
                str(r.failed_chunks),
                status,
            )

        console.print(t)


out = Out()

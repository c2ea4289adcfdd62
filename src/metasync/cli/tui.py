"""Terminal UI utilities for choosing a reconciliation rule."""

from __future__ import annotations

import questionary

from metasync.cli.common.tui_style import QUESTIONARY_STYLE_SELECT
from metasync.core.config import Rule

_MAX_RULE_NAME_WIDTH = 48


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _types_summary(rule: Rule) -> str:
    """Describe the configured metadata types, e.g. `5 types, 1 by level`."""
    total = len(rule.metadata)
    levelled = sum(1 for m in rule.metadata if m.is_hierarchical)
    summary = f"{total} type" if total == 1 else f"{total} types"
    if levelled:
        summary += f", {levelled} by level"
    return summary


def _rule_choice_title(rule: Rule, *, name_width: int) -> str:
    """Format one rule as `<name>  <types> -> <branch>  (<origin>)`, name column aligned."""
    short_name = _truncate(rule.name, _MAX_RULE_NAME_WIDTH)
    return (
        f"{short_name.ljust(name_width)}  "
        f"{_types_summary(rule)} -> {rule.branch}  ({rule.origin_url})"
    )


def select_rule(rules: list[Rule]) -> Rule | None:
    """Display a select prompt to pick one rule.

    Rules without metadata types are listed but cannot be chosen, since a
    run over them would only produce an empty commit.

    Args:
        rules: Configured rules to choose from.

    Returns:
        The chosen Rule, or None if the prompt was cancelled.
    """
    shown_names = [_truncate(rule.name, _MAX_RULE_NAME_WIDTH) for rule in rules]
    name_width = max((len(name) for name in shown_names), default=0)

    choices = [
        questionary.Choice(
            title=_rule_choice_title(rule, name_width=name_width),
            value=rule,
            disabled=None if rule.metadata else "no metadata types",
        )
        for rule in rules
    ]

    return questionary.select(
        "Select a rule to update:",
        choices=choices,
        style=QUESTIONARY_STYLE_SELECT,
    ).ask()

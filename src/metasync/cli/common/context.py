"""Application context management for the CLI."""

from dataclasses import dataclass
from pathlib import Path

from metasync.cli.common.exits import exit_from_exc
from metasync.core.config import Rule, load_rules, resolve_config_path
from metasync.core.errors import ConfigurationError


@dataclass
class AppContext:
    """Application context holding the loaded rules and their source file."""

    config_path: Path
    rules: list[Rule]


def build_context(config: Path | None) -> AppContext:
    """Load every rule from the config file.

    Args:
        config: Optional explicit config path; otherwise the environment
            override or ./config.json is used.

    Returns:
        AppContext: Context with the parsed rules.
    """
    config_path = resolve_config_path(config)
    try:
        rules = load_rules(config_path)
    except ConfigurationError as exc:
        exit_from_exc(exc, message=str(exc), code=1)
    return AppContext(config_path=config_path, rules=rules)

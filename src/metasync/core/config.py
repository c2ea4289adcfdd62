"""Loading of reconciliation rules from `config.json`.

A rule bundles the remote origin, the mirror repository and the ordered
list of metadata types to reconcile. The file location defaults to
`./config.json` and can be overridden with the `METASYNC_CONFIG`
environment variable or an explicit path.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from metasync.core.errors import ConfigurationError
from metasync.core.fetcher import CHUNK_SIZE, CONCURRENT_QUERIES
from metasync.core.models import MetadataTypeConfig

CONFIG_ENV = "METASYNC_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.json")
REQUEST_TIMEOUT = 60.0


@dataclass(frozen=True)
class Credentials:
    """Basic-auth credentials for the remote catalog."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class RepoCredentials:
    """SSH private key used for clone and push.

    The key must not need a passphrase; ssh runs in batch mode and never
    prompts. Protected keys can be loaded into ssh-agent instead.
    """

    private_key: str | None = None


@dataclass(frozen=True)
class Committer:
    """Author identity of the run's commit."""

    name: str
    email: str


@dataclass(frozen=True)
class Rule:
    """One named reconciliation rule."""

    name: str
    origin_url: str
    credentials: Credentials
    repo: str
    branch: str
    committer: Committer
    metadata: tuple[MetadataTypeConfig, ...] = ()
    repo_credentials: RepoCredentials | None = None
    debug: bool = False
    strict: bool = False
    concurrent_queries: int = CONCURRENT_QUERIES
    chunk_size: int = CHUNK_SIZE
    request_timeout: float = REQUEST_TIMEOUT


def resolve_config_path(path: Path | None = None) -> Path:
    """Return the config path, honoring the environment override."""
    if path is not None:
        return path
    env_value = os.getenv(CONFIG_ENV, "").strip()
    return Path(env_value) if env_value else DEFAULT_CONFIG_PATH


def _require(item: Mapping[str, Any], key: str, where: str) -> Any:
    value = item.get(key)
    if value in (None, ""):
        raise ConfigurationError(f"Missing `{key}` in {where}.")
    return value


def _positive(item: Mapping[str, Any], key: str, default: float, cast: type, where: str) -> Any:
    try:
        value = cast(item.get(key, default))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid `{key}` in {where}: {exc}") from exc
    if value <= 0:
        raise ConfigurationError(f"`{key}` in {where} must be greater than 0, got {value}.")
    return value


def parse_metadata_type(item: Mapping[str, Any]) -> MetadataTypeConfig:
    """Build a MetadataTypeConfig from one `metadata[]` entry."""
    if isinstance(item, str):
        return MetadataTypeConfig(name=item)
    name = _require(item, "name", "metadata entry")
    return MetadataTypeConfig(
        name=name,
        group=item.get("group") or None,
        display_name=item.get("displayName") or None,
        is_hierarchical=bool(item.get("isHierarchical", False)),
        levels_type=item.get("levelsType") or "organisationUnitLevels",
        level_field=item.get("levelField") or "level",
    )


def parse_rule(item: Mapping[str, Any]) -> Rule:
    """Build a Rule from one `rules[]` entry of the config file."""
    name = _require(item, "name", "rule")
    where = f"rule '{name}'"

    auth = _require(item, "originCredentials", where)
    committer = item.get("commiter") or item.get("committer")
    if not committer:
        raise ConfigurationError(f"Missing `commiter` in {where}.")

    repo_auth = item.get("repoCredentials") or {}
    if not isinstance(repo_auth, Mapping):
        raise ConfigurationError(f"`repoCredentials` in {where} must be an object.")
    if repo_auth.get("passphrase"):
        raise ConfigurationError(
            f"Passphrase-protected keys are not supported in {where}; "
            "add the key to ssh-agent and drop `passphrase`."
        )
    repo_credentials = (
        RepoCredentials(private_key=repo_auth.get("privateKey"))
        if repo_auth.get("privateKey")
        else None
    )

    try:
        return Rule(
            name=name,
            origin_url=str(_require(item, "originUrl", where)).rstrip("/"),
            credentials=Credentials(
                username=_require(auth, "username", where),
                password=auth.get("password") or "",
            ),
            repo=_require(item, "repo", where),
            branch=item.get("repoBranch") or "master",
            committer=Committer(
                name=_require(committer, "name", where),
                email=committer.get("mail") or committer.get("email") or "",
            ),
            metadata=tuple(parse_metadata_type(m) for m in item.get("metadata", [])),
            repo_credentials=repo_credentials,
            debug=bool(item.get("debug", False)),
            strict=bool(item.get("strict", False)),
            concurrent_queries=_positive(item, "concurrentQueries", CONCURRENT_QUERIES, int, where),
            chunk_size=_positive(item, "chunkSize", CHUNK_SIZE, int, where),
            request_timeout=_positive(item, "requestTimeout", REQUEST_TIMEOUT, float, where),
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid {where}: {exc}") from exc


def load_rules(path: Path | None = None) -> list[Rule]:
    """Load every rule from the config file."""
    config_path = resolve_config_path(path)
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file {config_path} not found.") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Could not read {config_path}: {exc}") from exc

    rules = payload.get("rules") if isinstance(payload, dict) else None
    if not isinstance(rules, list):
        raise ConfigurationError(f"{config_path} has no `rules` list.")
    return [parse_rule(r) for r in rules]


def find_rule(rules: list[Rule], name: str) -> Rule:
    """Return the rule called `name`."""
    for rule in rules:
        if rule.name == name:
            return rule
    raise ConfigurationError(f"Rule {name} not found in config.json")

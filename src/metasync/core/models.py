"""Core domain models for metadata reconciliation.

These models describe what a reconciliation run observes and produces.
They are intentionally free of HTTP, git and CLI concerns so the same
structures can be used by the engine, the adapters and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

CatalogObject = Mapping[str, Any]


@dataclass(frozen=True)
class CatalogItemRef:
    """
    Minimal projection of a remote object.

    Attributes:
        id: Opaque identifier, unique within its type.
        last_updated: Remote modification timestamp, compared verbatim.
        path: Mirror file (relative to the working tree root) written for
              this id. Not part of equality: two refs are equal when id and
              last_updated match.
    """

    id: str
    last_updated: str | None
    path: str | None = field(default=None, compare=False)

    def to_json(self) -> dict[str, str]:
        """Return the snapshot file representation."""
        payload = {"id": self.id, "lastUpdated": self.last_updated}
        if self.path:
            payload["path"] = self.path
        return payload

    @classmethod
    def from_json(cls, item: Mapping[str, Any]) -> "CatalogItemRef":
        """Build a ref from a listing or snapshot entry."""
        return cls(
            id=str(item["id"]),
            last_updated=item.get("lastUpdated"),
            path=item.get("path"),
        )


@dataclass(frozen=True)
class MetadataTypeConfig:
    """
    Static configuration for one metadata type of a rule.

    Attributes:
        name: Remote type name (plural endpoint name, e.g. `dataElements`).
        group: Optional top-level folder in the mirror.
        display_name: Optional folder name; defaults to the remote schema's.
        is_hierarchical: When True, the type is listed once per hierarchy level.
        levels_type: Remote type enumerating hierarchy levels.
        level_field: Field of `name` filtered by the level number.
    """

    name: str
    group: str | None = None
    display_name: str | None = None
    is_hierarchical: bool = False
    levels_type: str = "organisationUnitLevels"
    level_field: str = "level"


@dataclass(frozen=True)
class TypeSchema:
    """Remote schema entry used to validate and label a configured type."""

    name: str
    display_name: str | None = None


@dataclass(frozen=True)
class HierarchyLevel:
    """One level of a hierarchical type (numeric level and display label)."""

    level: int
    label: str


@dataclass(frozen=True)
class LogicalType:
    """
    Unit of reconciliation: a flat type or one hierarchy level of a type.

    Attributes:
        key: Snapshot key, also used as folder alias in the mirror.
        config: Configuration of the underlying metadata type.
        display_name: Resolved display name of the underlying type.
        level: Hierarchy level for hierarchical sub-passes.
    """

    key: str
    config: MetadataTypeConfig
    display_name: str | None = None
    level: HierarchyLevel | None = None

    @property
    def type_name(self) -> str:
        return self.config.name

    @classmethod
    def flat(cls, config: MetadataTypeConfig, display_name: str | None) -> "LogicalType":
        return cls(key=config.name, config=config, display_name=display_name)

    @classmethod
    def for_level(
        cls,
        config: MetadataTypeConfig,
        display_name: str | None,
        level: HierarchyLevel,
    ) -> "LogicalType":
        """Build the logical type for one hierarchy level.

        The key always contains `Level`, so it never collides with a flat key.
        """
        base = display_name or config.name
        return cls(
            key=f"{base} Level {level.level} ({level.label})",
            config=config,
            display_name=display_name,
            level=level,
        )


@dataclass(frozen=True)
class ReconciliationResult:
    """Ids classified by one diff. The three sets are disjoint."""

    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()
    changed: frozenset[str] = frozenset()
    common: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


class FetchStatus(str, Enum):
    """Completion state of a batched fetch."""

    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"


@dataclass(frozen=True)
class ChunkResult:
    """Outcome of one chunk request; `error` is set when the chunk failed."""

    ids: tuple[str, ...]
    objects: tuple[CatalogObject, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class FetchOutcome:
    """Drained result of a batched fetch."""

    objects: tuple[CatalogObject, ...] = ()
    requested: int = 0
    failed_chunks: int = 0
    failed_ids: frozenset[str] = frozenset()

    @property
    def status(self) -> FetchStatus:
        return FetchStatus.PARTIAL if self.failed_chunks else FetchStatus.SUCCESS


class PassStatus(str, Enum):
    """
    Final state of one pass.

    Values:
        SYNCED: Diff applied and snapshot written.
        PARTIAL: Snapshot written, but some bodies could not be fetched.
        FAILED: The pass aborted; the previous snapshot is untouched.
    """

    SYNCED = "SYNCED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


@dataclass(frozen=True)
class PassResult:
    """Summary of one pass over a logical type."""

    key: str
    status: PassStatus
    added: int = 0
    removed: int = 0
    changed: int = 0
    written: int = 0
    deleted_files: int = 0
    failed_chunks: int = 0
    error: str | None = None


class RunState(str, Enum):
    """States of a reconciliation run."""

    IDLE = "IDLE"
    PER_TYPE = "PER_TYPE"
    COMMITTING = "COMMITTING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class RunResult:
    """Accumulated outcome of a run."""

    state: RunState = RunState.IDLE
    passes: list[PassResult] = field(default_factory=list)
    skipped_types: list[str] = field(default_factory=list)
    commit_id: str | None = None
    error: str | None = None

    @property
    def failed_passes(self) -> list[PassResult]:
        return [p for p in self.passes if p.status == PassStatus.FAILED]

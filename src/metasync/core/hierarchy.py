"""Expansion of hierarchical metadata types into per-level passes."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from metasync.core.models import (
    CatalogItemRef,
    HierarchyLevel,
    LogicalType,
    MetadataTypeConfig,
    PassResult,
)

logger = logging.getLogger(__name__)

Listing = Callable[[], list[CatalogItemRef]]
PassRunner = Callable[[LogicalType, Listing], PassResult]


class HierarchyClient(Protocol):
    """Interface for level enumeration and filtered listings."""

    def list_hierarchy_levels(self, levels_type: str) -> list[HierarchyLevel]:
        """Return the hierarchy levels exposed by the remote."""
        ...

    def list_refs(
        self, type_name: str, filter: str | None = None
    ) -> list[CatalogItemRef]:
        """Return id/lastUpdated refs for a type, optionally filtered."""
        ...


def level_filter(config: MetadataTypeConfig, level: HierarchyLevel) -> str:
    """Return the remote filter expression selecting one level."""
    return f"{config.level_field}:eq:{level.level}"


class HierarchyWalker:
    """Runs one independent pass per hierarchy level of a type."""

    def __init__(self, client: HierarchyClient) -> None:
        self.client = client

    def levels(self, config: MetadataTypeConfig) -> list[HierarchyLevel]:
        """Return the levels of `config`, lowest level first."""
        levels = self.client.list_hierarchy_levels(config.levels_type)
        return sorted(levels, key=lambda lvl: lvl.level)

    def walk(
        self,
        config: MetadataTypeConfig,
        display_name: str | None,
        run_pass: PassRunner,
    ) -> list[PassResult]:
        """
        Enumerate levels and hand each one to `run_pass` as its own logical type.

        Levels are processed sequentially. A type without levels yields no
        passes. Errors from the level enumeration propagate to the caller.
        """
        levels = self.levels(config)
        if not levels:
            logger.info("[METADATA] %s has no hierarchy levels", config.name)
            return []

        results: list[PassResult] = []
        for level in levels:
            logical_type = LogicalType.for_level(config, display_name, level)
            query = level_filter(config, level)

            def listing(query: str = query) -> list[CatalogItemRef]:
                return self.client.list_refs(config.name, filter=query)

            results.append(run_pass(logical_type, listing))
        return results

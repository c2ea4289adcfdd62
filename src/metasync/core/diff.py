"""Diff classification between a remote listing and a local snapshot."""

from __future__ import annotations

from typing import Iterable

from metasync.core.models import CatalogItemRef, ReconciliationResult


def classify(
    server_refs: Iterable[CatalogItemRef],
    local_refs: Iterable[CatalogItemRef],
) -> ReconciliationResult:
    """
    Classify ids as added, removed or changed.

    Ids are the join key: an id only on the server is added, an id only in
    the snapshot is removed, and an id on both sides whose lastUpdated
    differs is changed. An empty snapshot therefore yields only additions.

    Args:
        server_refs: Current remote listing.
        local_refs: Snapshot recorded by the previous run.

    Returns:
        A ReconciliationResult with disjoint id sets.
    """
    server = {ref.id: ref for ref in server_refs}
    local = {ref.id: ref for ref in local_refs}

    common = server.keys() & local.keys()
    changed = {i for i in common if server[i] != local[i]}

    return ReconciliationResult(
        added=frozenset(server.keys() - local.keys()),
        removed=frozenset(local.keys() - server.keys()),
        changed=frozenset(changed),
        common=len(common),
    )

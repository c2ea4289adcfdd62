"""Reconciliation of configured metadata types against their snapshots.

The engine walks the configured types strictly in order. Each logical type
goes through one pass: list refs, classify against the snapshot, fetch and
write added bodies, remove deleted files, fetch and write changed bodies,
then replace the snapshot. Once every pass has run, the working tree is
committed and pushed as a single unit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import PurePosixPath
from typing import Callable, Protocol, Sequence

from metasync.core.config import Committer
from metasync.core.diff import classify
from metasync.core.errors import (
    FilesystemError,
    PartialFetchError,
    PublishError,
    RemoteListingError,
)
from metasync.core.fetcher import BatchedFetcher
from metasync.core.hierarchy import HierarchyClient, HierarchyWalker, Listing
from metasync.core.models import (
    CatalogItemRef,
    LogicalType,
    MetadataTypeConfig,
    PassResult,
    PassStatus,
    ReconciliationResult,
    RunResult,
    RunState,
    TypeSchema,
)
from metasync.core.snapshot import SnapshotStore
from metasync.core.writer import DiskWriter, type_folder

logger = logging.getLogger(__name__)


class CatalogClient(HierarchyClient, Protocol):
    """Remote operations the engine needs besides body fetches."""

    def resolve_type(self, name: str) -> TypeSchema | None:
        """Return the schema of `name`, or None if the remote does not know it."""
        ...


class Publisher(Protocol):
    """Version control operations used once at the end of a run."""

    def stage_all(self) -> None:
        ...

    def commit(self, author_name: str, author_email: str, message: str) -> str:
        ...

    def push(self, branch: str) -> None:
        ...


class RunProgress(Protocol):
    """Observer notified as types are processed."""

    def start(self, total: int) -> None:
        ...

    def type_started(self, name: str) -> None:
        ...

    def type_finished(self, name: str) -> None:
        ...


class _NoProgress:
    def start(self, total: int) -> None:
        return None

    def type_started(self, name: str) -> None:
        return None

    def type_finished(self, name: str) -> None:
        return None


def commit_message(now: datetime) -> str:
    """Return the commit message for a run finished at `now`."""
    return f"Updates from remote on {format_datetime(now.astimezone(timezone.utc), usegmt=True)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationEngine:
    """Runs passes for configured types and publishes the result."""

    def __init__(
        self,
        client: CatalogClient,
        store: SnapshotStore,
        writer: DiskWriter,
        fetcher: BatchedFetcher,
        *,
        walker: HierarchyWalker | None = None,
        strict: bool = False,
        progress: RunProgress | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.store = store
        self.writer = writer
        self.fetcher = fetcher
        self.walker = walker or HierarchyWalker(client)
        self.strict = strict
        self.progress = progress or _NoProgress()
        self.clock = clock
        self.result = RunResult()
        self._written_paths: set[str] = set()

    def run(
        self,
        types: Sequence[MetadataTypeConfig],
        publisher: Publisher,
        committer: Committer,
        branch: str,
    ) -> RunResult:
        """
        Reconcile every type, then commit and push once.

        Raises:
            PublishError: If the commit or push fails. Files and snapshots
                already written stay in the working tree.
        """
        self.reconcile(types)
        self.publish(publisher, committer, branch)
        return self.result

    def reconcile(self, types: Sequence[MetadataTypeConfig]) -> RunResult:
        """Run one pass per logical type without publishing."""
        self.result = RunResult(state=RunState.PER_TYPE)
        self._written_paths = set()

        resolved: list[tuple[MetadataTypeConfig, TypeSchema]] = []
        for config in types:
            try:
                schema = self.client.resolve_type(config.name)
            except RemoteListingError as exc:
                self.result.state = RunState.FAILED
                self.result.error = str(exc)
                raise
            if schema is None:
                logger.warning("[METADATA] Unknown type %s, skipping", config.name)
                self.result.skipped_types.append(config.name)
                continue
            resolved.append((config, schema))

        self.progress.start(len(resolved))
        for config, schema in resolved:
            self.progress.type_started(config.name)
            display_name = config.display_name or schema.display_name
            if config.is_hierarchical:
                self._run_hierarchical(config, display_name)
            else:
                logical_type = LogicalType.flat(config, display_name)
                self.run_pass(
                    logical_type, lambda name=config.name: self.client.list_refs(name)
                )
            self.progress.type_finished(config.name)
        return self.result

    def _run_hierarchical(self, config: MetadataTypeConfig, display_name: str | None) -> None:
        try:
            self.walker.walk(config, display_name, self.run_pass)
        except RemoteListingError as exc:
            logger.error("[METADATA] %s levels unavailable: %s", config.name, exc)
            self.result.passes.append(
                PassResult(key=config.name, status=PassStatus.FAILED, error=str(exc))
            )

    def publish(self, publisher: Publisher, committer: Committer, branch: str) -> str:
        """Stage, commit and push the working tree; returns the commit id."""
        self.result.state = RunState.COMMITTING
        try:
            publisher.stage_all()
            commit_id = publisher.commit(
                committer.name, committer.email, commit_message(self.clock())
            )
            publisher.push(branch)
        except PublishError as exc:
            self.result.state = RunState.FAILED
            self.result.error = str(exc)
            raise
        logger.info("[GIT] Published commit %s", commit_id)
        self.result.commit_id = commit_id
        self.result.state = RunState.DONE
        return commit_id

    def run_pass(self, logical_type: LogicalType, listing: Listing) -> PassResult:
        """Run diff, fetch, write and snapshot update for one logical type."""
        key = logical_type.key
        try:
            server_refs = listing()
        except RemoteListingError as exc:
            logger.error("[METADATA] %s listing failed: %s", key, exc)
            return self._record(PassResult(key=key, status=PassStatus.FAILED, error=str(exc)))

        local_refs = self.store.read(key)
        diff = classify(server_refs, local_refs)
        self._log_diff(key, diff)

        previous = {ref.id: ref for ref in local_refs}
        folder = type_folder(logical_type).as_posix()
        paths = self._known_paths(local_refs, folder)

        # TODO: mirror created, updated and deleted objects to destination servers.
        try:
            added_written, added_failed = self._fetch_and_write(
                logical_type, sorted(diff.added), paths, previous
            )

            deleted_files = 0
            for obj_id in sorted(diff.removed):
                if self.writer.remove_by_id(
                    obj_id,
                    paths.pop(obj_id, None),
                    within=folder,
                    keep=self._written_paths,
                ):
                    deleted_files += 1

            changed_written, changed_failed = self._fetch_and_write(
                logical_type, sorted(diff.changed), paths, previous
            )

            failed_chunks = added_failed + changed_failed
            if failed_chunks and self.strict:
                raise PartialFetchError(key, failed_chunks)

            written = added_written | changed_written
            pending = (diff.added | diff.changed) - written
            if pending:
                logger.warning(
                    "[METADATA] %s: %d element(s) not fetched, retrying next run",
                    key,
                    len(pending),
                )
            self.store.write(key, self._next_snapshot(server_refs, previous, paths, pending))
        except (PartialFetchError, FilesystemError) as exc:
            logger.error("[METADATA] %s pass failed: %s", key, exc)
            return self._record(
                PassResult(
                    key=key,
                    status=PassStatus.FAILED,
                    added=len(diff.added),
                    removed=len(diff.removed),
                    changed=len(diff.changed),
                    error=str(exc),
                )
            )

        return self._record(
            PassResult(
                key=key,
                status=PassStatus.PARTIAL if pending else PassStatus.SYNCED,
                added=len(diff.added),
                removed=len(diff.removed),
                changed=len(diff.changed),
                written=len(written),
                deleted_files=deleted_files,
                failed_chunks=failed_chunks,
            )
        )

    def _fetch_and_write(
        self,
        logical_type: LogicalType,
        ids: list[str],
        paths: dict[str, str],
        previous: dict[str, CatalogItemRef],
    ) -> tuple[set[str], int]:
        """Fetch `ids` chunk by chunk and write each body as its chunk completes."""
        written: set[str] = set()
        failed_chunks = 0
        wanted = set(ids)

        for chunk in self.fetcher.iter_batches(logical_type.type_name, ids):
            if not chunk.ok:
                failed_chunks += 1
                continue
            for obj in chunk.objects:
                obj_id = str(obj.get("id", ""))
                if obj_id not in wanted:
                    continue
                new_path = self.writer.write(obj, logical_type)
                self._drop_stale(obj_id, paths.get(obj_id), new_path, obj_id in previous)
                paths[obj_id] = new_path
                self._written_paths.add(new_path)
                written.add(obj_id)
        return written, failed_chunks

    def _drop_stale(
        self, obj_id: str, old_path: str | None, new_path: str, known: bool
    ) -> None:
        """Remove the previous file of a renamed object."""
        if old_path:
            if old_path != new_path and old_path not in self._written_paths:
                self.writer.remove(old_path)
            return
        if not known:
            return
        folder = PurePosixPath(new_path).parent.as_posix()
        for stale in self.writer.find_by_id(obj_id, within=folder):
            rel = stale.relative_to(self.writer.root).as_posix()
            if rel != new_path and rel not in self._written_paths:
                self.writer.remove(rel)

    def _known_paths(
        self, local_refs: list[CatalogItemRef], folder: str
    ) -> dict[str, str]:
        """
        Return the mirror path of every previously recorded id.

        Entries written without a path are looked up once in the folder of
        their logical type, so later snapshots carry the path.
        """
        paths = {ref.id: ref.path for ref in local_refs if ref.path}
        if len(paths) < len(local_refs):
            on_disk = self.writer.index_folder(folder)
            for ref in local_refs:
                if not ref.path and ref.id in on_disk:
                    paths[ref.id] = on_disk[ref.id]
        return paths

    @staticmethod
    def _next_snapshot(
        server_refs: list[CatalogItemRef],
        previous: dict[str, CatalogItemRef],
        paths: dict[str, str],
        pending: set[str],
    ) -> list[CatalogItemRef]:
        """
        Build the snapshot that replaces the previous one.

        Ids whose bodies were not written keep their previous entry (or are
        left out when they are new), so the next run classifies them again.
        """
        refs: list[CatalogItemRef] = []
        for ref in server_refs:
            if ref.id in pending:
                if ref.id in previous:
                    refs.append(previous[ref.id])
                continue
            refs.append(CatalogItemRef(ref.id, ref.last_updated, path=paths.get(ref.id)))
        return refs

    def _record(self, result: PassResult) -> PassResult:
        self.result.passes.append(result)
        return result

    @staticmethod
    def _log_diff(key: str, diff: ReconciliationResult) -> None:
        logger.info("[METADATA] %s Common: %d elements", key, diff.common)
        logger.info("[METADATA] %s Added: %d elements", key, len(diff.added))
        logger.info("[METADATA] %s Deleted: %d elements", key, len(diff.removed))
        logger.info("[METADATA] %s Changed: %d elements", key, len(diff.changed))
        logger.debug("[METADATA] %s Added: %s", key, sorted(diff.added))
        logger.debug("[METADATA] %s Deleted: %s", key, sorted(diff.removed))
        logger.debug("[METADATA] %s Changed: %s", key, sorted(diff.changed))

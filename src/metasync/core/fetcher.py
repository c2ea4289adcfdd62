"""Batched retrieval of full object bodies.

Ids are split into fixed-size chunks and each chunk becomes one remote
request. Requests run on an executor supplied by the caller; a single
executor is shared by every pass of a run, so its worker count is the
run-wide cap on concurrent queries. A failing chunk is logged and reported
in the outcome without affecting its siblings.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, as_completed
from typing import Iterator, Mapping, Protocol, Sequence

from metasync.core.models import CatalogObject, ChunkResult, FetchOutcome

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100
CONCURRENT_QUERIES = 5
OWNER_FIELDS = ":owner"


class BodiesClient(Protocol):
    """Interface for full-body lookups used by the fetcher."""

    def fetch_by_ids(
        self, type_name: str, ids: Sequence[str], fields: str
    ) -> Mapping[str, list[CatalogObject]]:
        """Return `{type_name: [objects]}` for the requested ids."""
        ...


def chunked(ids: Sequence[str], size: int) -> list[tuple[str, ...]]:
    """Split `ids` into consecutive tuples of at most `size` items."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [tuple(ids[i : i + size]) for i in range(0, len(ids), size)]


class BatchedFetcher:
    """Fetches bodies in bounded chunks on a shared executor."""

    def __init__(
        self,
        client: BodiesClient,
        executor: Executor,
        *,
        chunk_size: int = CHUNK_SIZE,
        fields: str = OWNER_FIELDS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.client = client
        self.executor = executor
        self.chunk_size = chunk_size
        self.fields = fields

    def _fetch_chunk(self, type_name: str, chunk: tuple[str, ...]) -> ChunkResult:
        try:
            response = self.client.fetch_by_ids(type_name, list(chunk), self.fields)
        except Exception as exc:  # noqa: BLE001 - isolate failures per chunk
            logger.error(
                "[FETCH] %s chunk of %d ids failed: %s", type_name, len(chunk), exc
            )
            return ChunkResult(ids=chunk, error=str(exc))
        objects = tuple(response.get(type_name) or ())
        return ChunkResult(ids=chunk, objects=objects)

    def iter_batches(self, type_name: str, ids: Sequence[str]) -> Iterator[ChunkResult]:
        """
        Yield one ChunkResult per chunk, in completion order.

        The generator is finite and not restartable. Requests are submitted
        on the first iteration; no request is issued for an empty id list.
        """
        chunks = chunked(list(ids), self.chunk_size)
        if not chunks:
            return
        futures = [
            self.executor.submit(self._fetch_chunk, type_name, chunk) for chunk in chunks
        ]
        for future in as_completed(futures):
            yield future.result()

    def fetch_bodies(self, type_name: str, ids: Sequence[str]) -> FetchOutcome:
        """Fetch every chunk for `ids` and return once all of them settled."""
        objects: list[CatalogObject] = []
        failed_ids: set[str] = set()
        failed_chunks = 0

        for result in self.iter_batches(type_name, ids):
            if result.ok:
                objects.extend(result.objects)
            else:
                failed_chunks += 1
                failed_ids.update(result.ids)

        return FetchOutcome(
            objects=tuple(objects),
            requested=len(ids),
            failed_chunks=failed_chunks,
            failed_ids=frozenset(failed_ids),
        )

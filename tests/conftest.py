from __future__ import annotations

import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from metasync.core.errors import ChunkFetchError, PublishError, RemoteListingError  # noqa: E402
from metasync.core.models import CatalogItemRef, HierarchyLevel, TypeSchema  # noqa: E402


def ref(obj_id: str, last_updated: str = "2024-01-01T00:00:00.000") -> CatalogItemRef:
    return CatalogItemRef(id=obj_id, last_updated=last_updated)


class FakeCatalog:
    """In-memory catalog recording every remote call."""

    def __init__(self, schemas: dict[str, str] | None = None) -> None:
        self.schemas = schemas or {}
        self.listings: dict[tuple[str, str | None], list[CatalogItemRef]] = {}
        self.bodies: dict[str, dict] = {}
        self.levels: list[HierarchyLevel] = []
        self.failing_listings: set[str] = set()
        self.failing_ids: set[str] = set()
        self.list_calls: list[tuple[str, str | None]] = []
        self.fetch_calls: list[tuple[str, tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def serve(self, type_name: str, refs, bodies=(), filter: str | None = None) -> None:
        self.listings[(type_name, filter)] = list(refs)
        for body in bodies:
            self.bodies[body["id"]] = body

    def resolve_type(self, name: str) -> TypeSchema | None:
        if name not in self.schemas:
            return None
        return TypeSchema(name=name, display_name=self.schemas[name])

    def list_refs(self, type_name: str, filter: str | None = None):
        self.list_calls.append((type_name, filter))
        if type_name in self.failing_listings:
            raise RemoteListingError(type_name, "HTTP 500")
        return list(self.listings.get((type_name, filter), []))

    def list_hierarchy_levels(self, levels_type: str):
        return list(self.levels)

    def fetch_by_ids(self, type_name: str, ids, fields: str):
        with self._lock:
            self.fetch_calls.append((type_name, tuple(ids)))
        if self.failing_ids.intersection(ids):
            raise ChunkFetchError(type_name, list(ids), "HTTP 502")
        return {type_name: [self.bodies[i] for i in ids if i in self.bodies]}


class FakePublisher:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple] = []

    def stage_all(self) -> None:
        self.calls.append(("stage_all",))

    def commit(self, author_name: str, author_email: str, message: str) -> str:
        self.calls.append(("commit", author_name, author_email, message))
        return "abc1234"

    def push(self, branch: str) -> None:
        if self.fail:
            raise PublishError("git push failed: rejected")
        self.calls.append(("push", branch))


@pytest.fixture(autouse=True)
def _reset_metasync_logger():
    yield
    logger = logging.getLogger("metasync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def pool():
    with ThreadPoolExecutor(max_workers=2) as executor:
        yield executor

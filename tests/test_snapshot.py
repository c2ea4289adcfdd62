import json

import pytest

from conftest import ref
from metasync.core.errors import SnapshotWriteError
from metasync.core.models import CatalogItemRef
from metasync.core.snapshot import SnapshotStore


@pytest.mark.parametrize(
    "refs",
    [
        [],
        [ref("a")],
        [ref("a", "2024-01-01"), ref("b", None), CatalogItemRef("c", "t", path="D/c.json")],
    ],
)
def test_write_then_read_returns_same_refs(tmp_path, refs):
    store = SnapshotStore(tmp_path)

    store.write("dataElements", refs)

    assert store.read("dataElements") == refs


def test_snapshot_file_layout(tmp_path):
    store = SnapshotStore(tmp_path)

    path = store.write("dataElements", [CatalogItemRef("a", "t1", path="D/A-a.json")])

    assert path == tmp_path / ".updater" / "dataElements.json"
    assert json.loads(path.read_text()) == [
        {"id": "a", "lastUpdated": "t1", "path": "D/A-a.json"}
    ]
    assert path.read_text().startswith("[\n    {")


def test_read_keeps_recorded_path(tmp_path):
    store = SnapshotStore(tmp_path)
    store.write("k", [CatalogItemRef("a", "t1", path="D/A-a.json")])

    assert store.read("k")[0].path == "D/A-a.json"


def test_read_missing_snapshot_is_empty(tmp_path):
    assert SnapshotStore(tmp_path).read("dataElements") == []


@pytest.mark.parametrize("content", ["", "{not json", '{"id": "a"}', "42"])
def test_read_malformed_snapshot_is_empty(tmp_path, content):
    store = SnapshotStore(tmp_path)
    store.directory.mkdir(parents=True)
    store.path_for("dataElements").write_text(content)

    assert store.read("dataElements") == []


def test_read_skips_entries_without_id(tmp_path):
    store = SnapshotStore(tmp_path)
    store.directory.mkdir(parents=True)
    store.path_for("k").write_text(
        json.dumps([{"lastUpdated": "t"}, "junk", {"id": "b", "lastUpdated": "t"}])
    )

    assert store.read("k") == [ref("b", "t")]


def test_write_replaces_previous_snapshot(tmp_path):
    store = SnapshotStore(tmp_path)
    store.write("k", [ref("a"), ref("b")])

    store.write("k", [ref("c")])

    assert store.read("k") == [ref("c")]
    assert not list(store.directory.glob("*.tmp"))


def test_hierarchy_keys_do_not_collide_with_flat_keys(tmp_path):
    store = SnapshotStore(tmp_path)
    store.write("organisationUnits", [ref("flat")])
    store.write("Organisation Unit Level 1 (National)", [ref("lvl")])

    assert store.read("organisationUnits") == [ref("flat")]
    assert store.read("Organisation Unit Level 1 (National)") == [ref("lvl")]


def test_write_failure_raises_snapshot_write_error(tmp_path):
    blocker = tmp_path / ".updater"
    blocker.write_text("not a directory")

    with pytest.raises(SnapshotWriteError):
        SnapshotStore(tmp_path).write("k", [ref("a")])

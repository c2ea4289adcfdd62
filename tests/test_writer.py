import json
import logging

import pytest

from metasync.core.errors import MirrorWriteError
from metasync.core.models import HierarchyLevel, LogicalType, MetadataTypeConfig
from metasync.core.writer import DiskWriter, clean_name, relative_path


def _flat(group=None, display_name="D", name="dataElements") -> LogicalType:
    return LogicalType.flat(MetadataTypeConfig(name=name, group=group), display_name)


def test_relative_path_uses_group_display_name_and_name():
    path = relative_path({"id": "abc123", "name": "My Item"}, _flat(group="G"))

    assert path.as_posix() == "G/D/My Item-abc123.json"


def test_relative_path_strips_unsafe_characters_from_name():
    path = relative_path({"id": "abc123", "name": "A/B"}, _flat())

    assert path.name == "AB-abc123.json"


@pytest.mark.parametrize("char", list('/\\?%*:|"<>\r\n\t'))
def test_clean_name_removes_each_unsafe_character(char):
    assert clean_name(f"a{char}b") == "ab"


def test_relative_path_without_name_is_id_only():
    assert relative_path({"id": "abc123"}, _flat()).as_posix() == "D/abc123.json"


def test_relative_path_without_group_or_display_name():
    path = relative_path({"id": "abc123"}, _flat(display_name=None))

    assert path.as_posix() == "abc123.json"


def test_relative_path_prefers_level_alias_over_display_name():
    config = MetadataTypeConfig(name="organisationUnits", group="Org", is_hierarchical=True)
    logical_type = LogicalType.for_level(
        config, "Organisation Unit", HierarchyLevel(level=2, label="District")
    )

    path = relative_path({"id": "ou1", "name": "Bo"}, logical_type)

    assert path.as_posix() == "Org/Organisation Unit Level 2 (District)/Bo-ou1.json"


def test_relative_path_requires_id():
    with pytest.raises(MirrorWriteError):
        relative_path({"name": "nameless"}, _flat())


def test_write_persists_pretty_json(tmp_path):
    writer = DiskWriter(tmp_path)
    obj = {"id": "abc123", "name": "My Item", "code": "MI"}

    rel = writer.write(obj, _flat(group="G"))

    target = tmp_path / rel
    assert rel == "G/D/My Item-abc123.json"
    assert json.loads(target.read_text()) == obj
    assert '\n    "id": "abc123"' in target.read_text()


def test_write_is_deterministic_across_calls(tmp_path):
    writer = DiskWriter(tmp_path)
    obj = {"id": "abc123", "name": "Same"}

    assert writer.write(obj, _flat()) == writer.write(dict(obj), _flat())


def test_remove_by_id_uses_known_path(tmp_path):
    writer = DiskWriter(tmp_path)
    rel = writer.write({"id": "abc123", "name": "X"}, _flat())

    assert writer.remove_by_id("abc123", known_path=rel) is True
    assert not (tmp_path / rel).exists()


def test_remove_by_id_searches_tree_when_path_is_stale(tmp_path):
    writer = DiskWriter(tmp_path)
    writer.write({"id": "abc123", "name": "Renamed"}, _flat(group="G"))
    writer.write({"id": "abc123"}, _flat(display_name="Other"))

    assert writer.remove_by_id("abc123", known_path="D/Old-abc123.json") is True
    assert writer.find_by_id("abc123") == []


def test_remove_by_id_does_not_match_longer_ids(tmp_path):
    writer = DiskWriter(tmp_path)
    writer.write({"id": "xabc123"}, _flat())

    assert writer.find_by_id("abc123") == []


def test_find_by_id_skips_snapshot_directory(tmp_path):
    writer = DiskWriter(tmp_path)
    (tmp_path / ".updater").mkdir()
    (tmp_path / ".updater" / "abc123.json").write_text("[]")

    assert writer.find_by_id("abc123") == []


def test_remove_by_id_without_match_warns(tmp_path, caplog):
    caplog.set_level(logging.WARNING, logger="metasync.core.writer")

    assert DiskWriter(tmp_path).remove_by_id("missing") is False
    assert "missing not found in disk" in caplog.text


def test_remove_by_id_within_folder_leaves_other_types_alone(tmp_path):
    writer = DiskWriter(tmp_path)
    other = writer.write({"id": "abc123", "name": "X"}, _flat(display_name="Other"))
    mine = writer.write({"id": "abc123", "name": "X"}, _flat())

    assert writer.remove_by_id("abc123", within="D") is True
    assert not (tmp_path / mine).exists()
    assert (tmp_path / other).exists()


def test_remove_by_id_never_removes_kept_paths(tmp_path, caplog):
    caplog.set_level(logging.WARNING, logger="metasync.core.writer")
    writer = DiskWriter(tmp_path)
    rel = writer.write({"id": "abc123", "name": "X"}, _flat())

    assert writer.remove_by_id("abc123", known_path=rel, keep={rel}) is False
    assert (tmp_path / rel).exists()


def test_index_folder_maps_ids_to_paths(tmp_path):
    writer = DiskWriter(tmp_path)
    named = writer.write({"id": "abc123", "name": "My-Item"}, _flat())
    bare = writer.write({"id": "def456"}, _flat())
    writer.write({"id": "zzz999"}, _flat(display_name="Other"))

    assert writer.index_folder("D") == {"abc123": named, "def456": bare}
    assert writer.index_folder("Missing") == {}

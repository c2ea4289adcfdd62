from conftest import FakeCatalog, ref
from metasync.core.hierarchy import HierarchyWalker, level_filter
from metasync.core.models import (
    HierarchyLevel,
    MetadataTypeConfig,
    PassResult,
    PassStatus,
)

OU = MetadataTypeConfig(name="organisationUnits", is_hierarchical=True)


def _collect(calls):
    def run_pass(logical_type, listing):
        calls.append((logical_type, listing()))
        return PassResult(key=logical_type.key, status=PassStatus.SYNCED)

    return run_pass


def test_walk_issues_one_listing_per_level_in_level_order():
    catalog = FakeCatalog()
    catalog.levels = [HierarchyLevel(2, "District"), HierarchyLevel(1, "National")]
    catalog.serve("organisationUnits", [ref("n1")], filter="level:eq:1")
    catalog.serve("organisationUnits", [ref("d1"), ref("d2")], filter="level:eq:2")
    calls = []

    results = HierarchyWalker(catalog).walk(OU, "Organisation Unit", _collect(calls))

    assert catalog.list_calls == [
        ("organisationUnits", "level:eq:1"),
        ("organisationUnits", "level:eq:2"),
    ]
    assert [r.key for r in results] == [
        "Organisation Unit Level 1 (National)",
        "Organisation Unit Level 2 (District)",
    ]
    assert [len(refs) for _, refs in calls] == [1, 2]
    assert calls[1][0].level == HierarchyLevel(2, "District")


def test_walk_without_levels_runs_no_pass():
    calls = []

    assert HierarchyWalker(FakeCatalog()).walk(OU, "Organisation Unit", _collect(calls)) == []
    assert calls == []


def test_walk_falls_back_to_type_name_without_display_name():
    catalog = FakeCatalog()
    catalog.levels = [HierarchyLevel(1, "National")]
    calls = []

    HierarchyWalker(catalog).walk(OU, None, _collect(calls))

    assert calls[0][0].key == "organisationUnits Level 1 (National)"


def test_level_filter_uses_configured_field():
    config = MetadataTypeConfig(name="categoryOptions", is_hierarchical=True, level_field="depth")

    assert level_filter(config, HierarchyLevel(3, "x")) == "depth:eq:3"

from metasync.cli.common.progress import _MAX_TYPE_NAME_WIDTH, _type_label


def test_type_label_is_blank_before_first_type():
    assert _type_label(None) == ""
    assert _type_label("") == ""


def test_type_label_truncates_long_hierarchy_keys():
    key = "Organisation Unit Level 4 (Facility with a rather long label)"

    label = _type_label(key)

    assert len(label) == _MAX_TYPE_NAME_WIDTH
    assert label.endswith("...")
    assert _type_label("dataElements") == "dataElements"

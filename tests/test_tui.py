from metasync.cli.tui import _MAX_RULE_NAME_WIDTH, _rule_choice_title, _truncate, _types_summary
from metasync.core.config import Committer, Credentials, Rule
from metasync.core.models import MetadataTypeConfig


def _rule(name: str, origin: str = "https://play.example.org", metadata=()) -> Rule:
    return Rule(
        name=name,
        origin_url=origin,
        credentials=Credentials(username="admin", password="district"),
        repo="git@example.org:m.git",
        branch="master",
        committer=Committer(name="Bot", email="bot@example.org"),
        metadata=tuple(metadata),
    )


def test_rule_choice_title_shows_name_before_origin_and_aligns_columns():
    first = _rule_choice_title(_rule("alpha"), name_width=12)
    second = _rule_choice_title(_rule("beta", "https://other.example.org"), name_width=12)

    assert first.startswith("alpha")
    assert second.startswith("beta")
    assert first.index("0 types") == second.index("0 types")
    assert first.endswith("-> master  (https://play.example.org)")


def test_rule_choice_title_truncates_long_names():
    long_name = "x" * (_MAX_RULE_NAME_WIDTH + 10)
    rendered = _rule_choice_title(_rule(long_name), name_width=_MAX_RULE_NAME_WIDTH)

    assert "..." in rendered
    assert "(https://play.example.org)" in rendered
    assert _truncate(long_name, _MAX_RULE_NAME_WIDTH).endswith("...")


def test_types_summary_counts_levelled_types():
    metadata = [
        MetadataTypeConfig(name="dataElements"),
        MetadataTypeConfig(name="indicators"),
        MetadataTypeConfig(name="organisationUnits", is_hierarchical=True),
    ]

    assert _types_summary(_rule("r", metadata=metadata)) == "3 types, 1 by level"
    assert _types_summary(_rule("r", metadata=metadata[:1])) == "1 type"

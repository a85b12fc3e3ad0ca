# tests/unit/test_grammar.py
"""针对 `uid_hub.grammar` 模块的单元测试。"""

import pytest

from uid_hub.config import GrammarConfig
from uid_hub.exceptions import EmptySegmentError, MalformedUIDError
from uid_hub.grammar import (
    DEFAULT_TIER1,
    SEPARATOR,
    GrammarTable,
    check_text_segment,
    default_grammar,
)


def test_default_grammar_knows_builtin_categories(grammar: GrammarTable) -> None:
    """内置类别都应被识别，未知类别不应被识别。"""
    for value in DEFAULT_TIER1:
        assert grammar.is_known_tier1(value)
    assert not grammar.is_known_tier1("workflow")
    assert grammar.segment_separator == SEPARATOR == ":"


def test_register_tier1_is_data_only_change(grammar: GrammarTable) -> None:
    """登记新类别后即可识别，且 revision 递增。"""
    revision = grammar.revision
    grammar.register_tier1("workflow", "table")
    assert grammar.is_known_tier1("workflow")
    assert grammar.is_known_tier1("table")
    assert grammar.revision == revision + 1
    assert "workflow" in grammar.known_tier1


def test_register_existing_tier1_does_not_bump_revision(grammar: GrammarTable) -> None:
    revision = grammar.revision
    grammar.register_tier1("class")
    assert grammar.revision == revision


def test_grammar_tables_are_independent() -> None:
    """向一个语法表登记类别不应影响另一个。"""
    first = default_grammar()
    second = default_grammar()
    first.register_tier1("workflow")
    assert not second.is_known_tier1("workflow")


@pytest.mark.parametrize("invalid", ["", "@class", "a:b", "x[", "x[]"])
def test_register_tier1_rejects_invalid_values(
    grammar: GrammarTable, invalid: str
) -> None:
    with pytest.raises(MalformedUIDError if invalid else EmptySegmentError):
        grammar.register_tier1(invalid)


def test_non_strict_grammar_accepts_any_tier1() -> None:
    table = GrammarTable(strict=False)
    assert table.is_known_tier1("anything")


def test_from_config_applies_extra_categories() -> None:
    table = GrammarTable.from_config(GrammarConfig(extra_tier1=["workflow"]))
    assert table.is_known_tier1("workflow")
    assert table.is_known_tier1("class")
    assert table.strict


@pytest.mark.parametrize(
    "segment", ["name", "params[0]", "range[a:b]", "a[0][1]", "名前"]
)
def test_check_text_segment_accepts_valid(segment: str) -> None:
    check_text_segment(segment)


@pytest.mark.parametrize(
    "segment, error",
    [
        ("", EmptySegmentError),
        ("a:b", MalformedUIDError),
        ("params[0", MalformedUIDError),
        ("params]", MalformedUIDError),
        ("params[]", MalformedUIDError),
        ("params[[0]]", MalformedUIDError),
    ],
)
def test_check_text_segment_rejects_invalid(
    segment: str, error: type[Exception]
) -> None:
    with pytest.raises(error):
        check_text_segment(segment, raw=segment, position=3)

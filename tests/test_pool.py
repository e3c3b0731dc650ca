from conftest import make_row

from dnaboard.difficulty import Level
from dnaboard.models import ScopeFilter
from dnaboard.pool import ItemBank


def test_query_without_scope_returns_all_items_in_order(bank: ItemBank) -> None:
    items = bank.query_items(ScopeFilter())
    assert [item.id for item in items] == ["add-1", "add-2", "add-3", "mul-1", "mul-2", "frac-2", "lin-3"]
    assert len(bank) == 7


def test_query_normalizes_difficulty_on_read(bank: ItemBank) -> None:
    levels = {item.id: item.difficulty for item in bank.query_items(ScopeFilter())}
    assert levels["add-1"] is Level.LEVEL_1
    assert levels["add-2"] is Level.LEVEL_2
    assert levels["add-3"] is Level.LEVEL_3
    assert levels["mul-2"] is Level.LEVEL_2


def test_difficulty_filter_matches_heterogeneous_encodings(bank: ItemBank) -> None:
    level_two = bank.query_items(ScopeFilter(difficulty=Level.LEVEL_2))
    assert [item.id for item in level_two] == ["add-2", "mul-2", "frac-2"]
    level_one = bank.query_items(ScopeFilter(difficulty=Level.LEVEL_1))
    assert [item.id for item in level_one] == ["add-1", "mul-1"]


def test_topic_skill_and_domain_filters(bank: ItemBank) -> None:
    assert [i.id for i in bank.query_items(ScopeFilter(topics=("Multiplication",)))] == ["mul-1", "mul-2"]
    assert [i.id for i in bank.query_items(ScopeFilter(skills=("Simplify",)))] == ["frac-2"]
    assert [i.id for i in bank.query_items(ScopeFilter(domain="Algebra"))] == ["lin-3"]
    combined = ScopeFilter(topics=("Addition", "Equations"), difficulty=Level.LEVEL_3)
    assert [i.id for i in bank.query_items(combined)] == ["add-3", "lin-3"]


def test_scope_filter_matches_items(bank: ItemBank) -> None:
    item = bank.query_items(ScopeFilter(topics=("Fractions",)))[0]
    assert ScopeFilter().matches(item)
    assert ScopeFilter(difficulty=Level.LEVEL_2, domain="Number").matches(item)
    assert not ScopeFilter(skills=("Other",)).matches(item)
    assert not ScopeFilter(difficulty=Level.LEVEL_1).matches(item)


def test_catalog_helpers(bank: ItemBank) -> None:
    assert bank.topics() == ["Addition", "Equations", "Fractions", "Multiplication"]
    assert bank.skills("Addition") == ["Single digit"]
    assert bank.domains() == ["Algebra", "Number"]
    assert bank.level_counts("Addition") == {1: 1, 2: 1, 3: 1}


def test_unrecognized_stored_difficulty_reads_as_level_two() -> None:
    bank = ItemBank([make_row("odd", difficulty="tricky")])
    assert bank.query_items(ScopeFilter())[0].difficulty is Level.LEVEL_2


def test_difficulty_filter_agrees_with_normalized_level() -> None:
    bank = ItemBank([make_row("upper", difficulty="EASY"), make_row("odd", difficulty="tricky")])
    assert [item.id for item in bank.query_items(ScopeFilter(difficulty=Level.LEVEL_1))] == ["upper"]
    assert [item.id for item in bank.query_items(ScopeFilter(difficulty=Level.LEVEL_2))] == ["odd"]
    assert bank.query_items(ScopeFilter(difficulty=Level.LEVEL_3)) == []
    assert bank.level_counts("Addition") == {1: 1, 2: 1, 3: 0}

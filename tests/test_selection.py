import random

import pytest
from conftest import FakeScheduler, make_due, make_row

from dnaboard.difficulty import Level
from dnaboard.models import ScopeFilter
from dnaboard.pool import ItemBank
from dnaboard.selection import sample_pool, select_due


class BrokenPool:
    def query_items(self, scope: ScopeFilter) -> list[object]:
        raise TimeoutError("pool offline")


def test_select_due_returns_records_in_store_order() -> None:
    scheduler = FakeScheduler([make_due("a"), make_due("b"), make_due("c")])
    assert [record.item_id for record in select_due(scheduler, "7B")] == ["a", "b", "c"]


def test_select_due_respects_capacity() -> None:
    scheduler = FakeScheduler([make_due("a"), make_due("b"), make_due("c")])
    assert [record.item_id for record in select_due(scheduler, "7B", capacity=2)] == ["a", "b"]
    assert select_due(scheduler, "7B", capacity=0) == []


def test_select_due_store_failure_returns_empty(caplog: pytest.LogCaptureFixture) -> None:
    scheduler = FakeScheduler([make_due("a")])
    scheduler.fail_due = True
    assert select_due(scheduler, "7B") == []
    assert "Scheduling store unavailable" in caplog.text


def test_select_due_keeps_frozen_text() -> None:
    scheduler = FakeScheduler([make_due("a", question="What is 3 + 4?", answer="7")])
    record = select_due(scheduler, "7B")[0]
    assert (record.question, record.answer) == ("What is 3 + 4?", "7")


def test_sample_pool_draws_distinct_items(bank: ItemBank, rng: random.Random) -> None:
    items = sample_pool(bank, 4, ScopeFilter(), rng)
    assert len(items) == 4
    assert len({item.id for item in items}) == 4


def test_sample_pool_is_reproducible_with_injected_source(bank: ItemBank) -> None:
    first = sample_pool(bank, 3, ScopeFilter(), random.Random(99))
    second = sample_pool(bank, 3, ScopeFilter(), random.Random(99))
    assert [item.id for item in first] == [item.id for item in second]


def test_sample_pool_shortfall_returns_all_eligible(bank: ItemBank, rng: random.Random) -> None:
    items = sample_pool(bank, 5, ScopeFilter(difficulty=Level.LEVEL_1), rng)
    assert sorted(item.id for item in items) == ["add-1", "mul-1"]


def test_sample_pool_zero_remaining_and_empty_pool(bank: ItemBank, rng: random.Random) -> None:
    assert sample_pool(bank, 0, ScopeFilter(), rng) == []
    assert sample_pool(bank, -2, ScopeFilter(), rng) == []
    assert sample_pool(bank, 3, ScopeFilter(topics=("Missing",)), rng) == []


def test_sample_pool_excludes_and_deduplicates(rng: random.Random) -> None:
    bank = ItemBank([make_row("a"), make_row("a"), make_row("b"), make_row("c")])
    items = sample_pool(bank, 5, ScopeFilter(), rng, exclude=["c"])
    assert sorted(item.id for item in items) == ["a", "b"]


def test_sample_pool_failure_returns_empty(rng: random.Random) -> None:
    assert sample_pool(BrokenPool(), 3, ScopeFilter(), rng) == []


def test_sample_pool_is_roughly_uniform(bank: ItemBank) -> None:
    rng = random.Random(2024)
    counts: dict[str, int] = {}
    for _ in range(2000):
        for item in sample_pool(bank, 1, ScopeFilter(), rng):
            counts[item.id] = counts.get(item.id, 0) + 1
    assert set(counts) == {"add-1", "add-2", "add-3", "mul-1", "mul-2", "frac-2", "lin-3"}
    assert min(counts.values()) > 200

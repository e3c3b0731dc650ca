"""Question pool store: bank rows as authored, converted to items on read."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from .difficulty import normalize_level
from .models import GeneratorRef, Item, ScopeFilter


class QuestionPoolStore(Protocol):
    """Source of candidate items for sampling."""

    def query_items(self, scope: ScopeFilter) -> list[Item]: ...


@dataclass(frozen=True)
class RawItemRow:
    """One bank row with difficulty exactly as stored."""

    id: str
    domain: str
    topic: str
    skill: str
    difficulty: str | int
    generator: GeneratorRef

    def to_item(self) -> Item:
        """Convert to an engine item, normalizing difficulty."""
        return Item(
            id=self.id,
            domain=self.domain,
            topic=self.topic,
            skill=self.skill,
            difficulty=normalize_level(self.difficulty),
            generator=self.generator,
        )


class ItemBank:
    """In-memory pool store over raw bank rows."""

    def __init__(self, rows: Iterable[RawItemRow]) -> None:
        """Initialize bank with rows in authored order."""
        self._rows = list(rows)

    def __len__(self) -> int:
        return len(self._rows)

    def query_items(self, scope: ScopeFilter) -> list[Item]:
        """Return items matching a scope, in bank order."""
        items: list[Item] = []
        for row in self._rows:
            if scope.difficulty is not None and normalize_level(row.difficulty) is not scope.difficulty:
                continue
            if scope.topics and row.topic not in scope.topics:
                continue
            if scope.skills and row.skill not in scope.skills:
                continue
            if scope.domain is not None and row.domain != scope.domain:
                continue
            items.append(row.to_item())
        return items

    def topics(self) -> list[str]:
        """Return distinct topics, sorted."""
        return sorted({row.topic for row in self._rows})

    def skills(self, topic: str | None = None) -> list[str]:
        """Return distinct skills, optionally within one topic."""
        return sorted({row.skill for row in self._rows if topic is None or row.topic == topic})

    def domains(self) -> list[str]:
        """Return distinct domains, sorted."""
        return sorted({row.domain for row in self._rows})

    def level_counts(self, topic: str) -> dict[int, int]:
        """Return item counts per canonical level for one topic."""
        counts = {1: 0, 2: 0, 3: 0}
        for row in self._rows:
            if row.topic == topic:
                counts[int(normalize_level(row.difficulty))] += 1
        return counts

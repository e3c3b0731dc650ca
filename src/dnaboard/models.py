"""Core domain models for board composition and review scheduling."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .difficulty import Level


class Origin(str, Enum):
    """Where a board slot's content came from."""

    REVIEW = "review"
    GENERATED = "generated"


class BoardState(str, Enum):
    """Lifecycle of one board."""

    BUILDING = "building"
    ACTIVE = "active"
    GRADING = "grading"
    COMPLETE = "complete"


@dataclass(frozen=True)
class GeneratorRef:
    """Named generator strategy plus the parameters for one template."""

    name: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable form."""
        return {"name": self.name, "params": dict(self.params)}


@dataclass(frozen=True)
class Item:
    """One question template in the bank."""

    id: str
    domain: str
    topic: str
    skill: str
    difficulty: Level
    generator: GeneratorRef


@dataclass(frozen=True)
class DueRecord:
    """Previously presented item that is due for review, with its frozen text."""

    item_id: str
    topic: str
    skill: str
    difficulty: Level
    question: str
    answer: str
    image: str | None
    due_lesson: int


@dataclass(frozen=True)
class ScopeFilter:
    """Constraints on which bank items may be sampled. Empty means unconstrained."""

    topics: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()
    domain: str | None = None
    difficulty: Level | None = None

    def matches(self, item: Item) -> bool:
        """Return whether an item satisfies every constraint."""
        if self.topics and item.topic not in self.topics:
            return False
        if self.skills and item.skill not in self.skills:
            return False
        if self.domain is not None and item.domain != self.domain:
            return False
        if self.difficulty is not None and item.difficulty is not self.difficulty:
            return False
        return True


@dataclass
class BoardSlot:
    """One position on a board."""

    id: str
    origin: Origin
    item_id: str | None
    topic: str
    skill: str
    difficulty: Level
    question: str
    answer: str
    image: str | None = None
    revealed: bool = False
    rating: int | None = None
    item: Item | None = None


@dataclass
class Board:
    """Slots for one session, stored by id with a separate display order."""

    group_id: str
    capacity: int
    created_at: str
    slots: dict[str, BoardSlot] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)
    state: BoardState = BoardState.BUILDING
    pending_session: Session | None = None

    def __len__(self) -> int:
        return len(self.order)

    def get(self, slot_id: str) -> BoardSlot | None:
        """Return slot by id if present."""
        return self.slots.get(slot_id)

    def ordered_slots(self) -> list[BoardSlot]:
        """Return slots in display order."""
        return [self.slots[slot_id] for slot_id in self.order]

    def is_fully_rated(self) -> bool:
        """Return whether every slot, review slots included, has a rating."""
        return bool(self.order) and all(self.slots[slot_id].rating is not None for slot_id in self.order)


@dataclass(frozen=True)
class SessionResult:
    """Final state of one slot at session completion."""

    slot_id: str
    item_id: str | None
    origin: Origin
    topic: str
    skill: str
    difficulty: Level
    question: str
    answer: str
    image: str | None
    rating: int | None
    interval: int


@dataclass(frozen=True)
class Session:
    """Completed board handed to the scheduling store."""

    group_id: str
    created_at: str
    results: tuple[SessionResult, ...]

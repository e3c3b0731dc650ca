from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from dnaboard.difficulty import Level  # noqa: E402
from dnaboard.models import DueRecord, GeneratorRef, Session  # noqa: E402
from dnaboard.pool import ItemBank, RawItemRow  # noqa: E402


class FakeScheduler:
    """In-memory scheduling store that records sessions and can be made to fail."""

    def __init__(self, due: list[DueRecord] | None = None) -> None:
        self.due = list(due or [])
        self.sessions: list[Session] = []
        self.fail_due = False
        self.fail_record = 0

    def due_records(self, group_id: str) -> list[DueRecord]:
        if self.fail_due:
            raise ConnectionError("scheduler offline")
        return list(self.due)

    def record_session(self, session: Session) -> None:
        if self.fail_record > 0:
            self.fail_record -= 1
            raise ConnectionError("scheduler offline")
        self.sessions.append(session)


def make_row(
    item_id: str,
    topic: str = "Addition",
    skill: str | None = None,
    difficulty: str | int = "••",
    domain: str = "Number",
    generator: GeneratorRef | None = None,
) -> RawItemRow:
    return RawItemRow(
        id=item_id,
        domain=domain,
        topic=topic,
        skill=skill or topic,
        difficulty=difficulty,
        generator=generator or GeneratorRef("addition", {"low": 1, "high": 9}),
    )


def make_due(item_id: str, topic: str = "Review", question: str = "Old Q", answer: str = "Old A") -> DueRecord:
    return DueRecord(
        item_id=item_id,
        topic=topic,
        skill=topic,
        difficulty=Level.LEVEL_2,
        question=question,
        answer=answer,
        image=None,
        due_lesson=1,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def bank() -> ItemBank:
    return ItemBank(
        [
            make_row("add-1", "Addition", "Single digit", "•"),
            make_row("add-2", "Addition", "Single digit", "Medium"),
            make_row("add-3", "Addition", "Single digit", "3"),
            make_row("mul-1", "Multiplication", "Tables", "easy", generator=GeneratorRef("multiplication")),
            make_row("mul-2", "Multiplication", "Tables", 2, generator=GeneratorRef("multiplication")),
            make_row("frac-2", "Fractions", "Simplify", "Level 2", generator=GeneratorRef("simplify_fraction")),
            make_row(
                "lin-3", "Equations", "Linear", "•••", domain="Algebra", generator=GeneratorRef("linear_equation")
            ),
        ]
    )


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()

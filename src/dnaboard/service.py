"""Board service: builds practice boards and runs them through to a saved session."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .config import EngineConfig
from .difficulty import Level, normalize_level
from .generators import GeneratedInstance, RandomSource, run_generator
from .intervals import interval_for_rating, is_valid_rating
from .models import (
    Board,
    BoardSlot,
    BoardState,
    DueRecord,
    GeneratorRef,
    Item,
    Origin,
    ScopeFilter,
    Session,
    SessionResult,
)
from .pool import QuestionPoolStore
from .progress import SchedulingStore
from .selection import sample_pool, select_due

logger = logging.getLogger(__name__)

SHARED_BOARD_NAME = "Shared DNA"


class BoardError(Exception):
    """Base error for invalid board operations."""


class SlotNotFoundError(BoardError, KeyError):
    """Slot id does not exist on the board."""


class ReviewSlotError(BoardError):
    """Review slots keep the content the group already saw."""


class BoardClosedError(BoardError):
    """Board session has already been saved."""


class SessionSaveError(BoardError):
    """Session could not be persisted; retry with the same board."""

    retryable = True

    def __init__(self, session: Session) -> None:
        super().__init__(f"Could not save session for group '{session.group_id}'.")
        self.session = session


@dataclass(frozen=True)
class SlotChange:
    """Result of an operation that may leave a slot unchanged."""

    board: Board
    warning: str | None = None

    @property
    def changed(self) -> bool:
        """Return whether the slot content was replaced."""
        return self.warning is None


@dataclass(frozen=True)
class Selection:
    """One requested row of a custom board."""

    topic: str
    difficulty: object = Level.LEVEL_2


class BoardService:
    """Coordinates board building, in-session slot operations and session completion."""

    def __init__(
        self,
        pool: QuestionPoolStore,
        scheduler: SchedulingStore,
        rng: RandomSource | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize service with its two stores."""
        self.config = config if config is not None else EngineConfig()
        self.pool = pool
        self.scheduler = scheduler
        self.rng: RandomSource = rng if rng is not None else self.config.make_rng()

    def build_board(self, group_id: str, scope: ScopeFilter | None = None, capacity: int | None = None) -> Board:
        """Build a board of due review items topped up with freshly generated items."""
        capacity = self._resolve_capacity(capacity)
        scope = scope if scope is not None else ScopeFilter()
        board = _new_board(group_id, capacity)

        due = select_due(self.scheduler, group_id, capacity)
        remaining = capacity - len(due)
        fresh = sample_pool(self.pool, remaining, scope, self.rng, exclude=[record.item_id for record in due])
        logger.debug("Building board for %r: %d review, %d fresh", group_id, len(due), len(fresh))

        slots = [_review_slot(record) for record in due]
        slots.extend(self._generated_slot(item) for item in fresh)
        self.rng.shuffle(slots)
        _place_slots(board, slots[:capacity])
        board.state = BoardState.ACTIVE
        return board

    def build_custom_board(
        self, group_id: str, selections: Iterable[Selection], capacity: int | None = None
    ) -> Board:
        """Build a board with one generated slot per requested topic and difficulty."""
        capacity = self._resolve_capacity(capacity)
        board = _new_board(group_id, capacity)
        slots: list[BoardSlot] = []
        for selection in list(selections)[:capacity]:
            level = normalize_level(selection.difficulty)
            items = sample_pool(self.pool, 1, ScopeFilter(topics=(selection.topic,), difficulty=level), self.rng)
            if not items:
                items = sample_pool(self.pool, 1, ScopeFilter(topics=(selection.topic,)), self.rng)
            if items:
                slots.append(self._generated_slot(items[0]))
            else:
                slots.append(_placeholder_slot(selection.topic, level))
        _place_slots(board, slots)
        board.state = BoardState.ACTIVE
        return board

    def board_from_shared(self, payload: Mapping[str, Any], group_id: str | None = None) -> Board:
        """Rebuild a board from a shared snapshot, keeping its stored question text."""
        questions = payload.get("questions")
        if not isinstance(questions, list):
            raise ValueError("Shared board has no questions.")
        slots = [
            self._shared_slot(index, raw) for index, raw in enumerate(questions) if isinstance(raw, Mapping)
        ]
        if not slots:
            raise ValueError("Shared board has no questions.")
        name = str(payload.get("class_name") or SHARED_BOARD_NAME)
        board = _new_board(group_id or name, len(slots))
        _place_slots(board, slots)
        board.state = BoardState.ACTIVE
        return board

    def share_config(self, board: Board, name: str | None = None) -> dict[str, Any]:
        """Return a JSON-serializable snapshot of the board's current questions."""
        return {
            "created_at": datetime.now(UTC).isoformat(),
            "class_name": name or board.group_id,
            "questions": [
                {
                    "item_id": slot.item_id,
                    "origin": slot.origin.value,
                    "topic": slot.topic,
                    "skill": slot.skill,
                    "difficulty": int(slot.difficulty),
                    "question_text": slot.question,
                    "answer_text": slot.answer,
                    "image": slot.image,
                    "generator": slot.item.generator.to_dict() if slot.item is not None else None,
                }
                for slot in board.ordered_slots()
            ],
        }

    def reveal(self, board: Board, slot_id: str) -> Board:
        """Toggle whether a slot's answer is shown."""
        self._ensure_open(board)
        slot = _slot(board, slot_id)
        slot.revealed = not slot.revealed
        return board

    def rate(self, board: Board, slot_id: str, score: int | None) -> Board:
        """Record a performance rating for a slot; None clears it."""
        self._ensure_open(board)
        if score is not None and not is_valid_rating(score):
            raise ValueError(f"Rating must be one of 0, 25, 75, 100: {score!r}")
        slot = _slot(board, slot_id)
        slot.rating = score
        board.pending_session = None
        if board.state is BoardState.ACTIVE:
            board.state = BoardState.GRADING
        return board

    def is_fully_rated(self, board: Board) -> bool:
        """Return whether every slot has a rating and the session can be completed."""
        return board.is_fully_rated()

    def reset_ratings(self, board: Board) -> Board:
        """Clear every rating on the board."""
        self._ensure_open(board)
        for slot in board.ordered_slots():
            slot.rating = None
        board.pending_session = None
        return board

    def regenerate(self, board: Board, slot_id: str) -> Board:
        """Produce a fresh instance of a generated slot's template."""
        self._ensure_open(board)
        slot = _slot(board, slot_id)
        if slot.origin is Origin.REVIEW:
            raise ReviewSlotError(f"Slot '{slot_id}' is a review slot and cannot be regenerated.")
        if slot.item is None:
            logger.info("Slot %r has no template to regenerate", slot_id)
            slot.revealed = False
            slot.rating = None
        else:
            _apply_item(slot, slot.item, run_generator(slot.item.generator, self.rng))
        board.pending_session = None
        return board

    def retarget(self, board: Board, slot_id: str, difficulty: object) -> SlotChange:
        """Replace a generated slot with an item of the same skill at another difficulty."""
        self._ensure_open(board)
        slot = _slot(board, slot_id)
        if slot.origin is Origin.REVIEW:
            raise ReviewSlotError(f"Slot '{slot_id}' is a review slot and cannot be retargeted.")
        level = normalize_level(difficulty)
        if slot.skill:
            scope = ScopeFilter(skills=(slot.skill,), difficulty=level)
        else:
            scope = ScopeFilter(topics=(slot.topic,), difficulty=level)
        items = sample_pool(self.pool, 1, scope, self.rng)
        if not items:
            warning = f"No questions found for Level {int(level)} in this topic."
            logger.warning("Retarget of slot %r: %s", slot_id, warning)
            return SlotChange(board=board, warning=warning)
        self._replace(board, slot, items[0])
        return SlotChange(board=board)

    def swap(self, board: Board, slot_id: str) -> SlotChange:
        """Replace a generated slot with a random item from the whole pool."""
        self._ensure_open(board)
        slot = _slot(board, slot_id)
        if slot.origin is Origin.REVIEW:
            raise ReviewSlotError(f"Slot '{slot_id}' is a review slot and cannot be swapped.")
        exclude = [slot.item_id] if slot.item_id is not None else []
        items = sample_pool(self.pool, 1, ScopeFilter(), self.rng, exclude=exclude)
        if not items:
            warning = "No other questions available to swap in."
            logger.warning("Swap of slot %r: %s", slot_id, warning)
            return SlotChange(board=board, warning=warning)
        self._replace(board, slot, items[0])
        return SlotChange(board=board)

    def complete_session(self, board: Board, group_id: str | None = None) -> Session:
        """Convert ratings into intervals and persist the session exactly once.

        A failed save keeps the built session on the board, so calling this
        again retries the same session without re-grading.
        """
        self._ensure_open(board)
        target_group = group_id or board.group_id
        session = board.pending_session
        if session is None or session.group_id != target_group:
            session = _build_session(board, target_group)
            board.pending_session = session
        try:
            self.scheduler.record_session(session)
        except Exception as exc:
            logger.warning("Could not save session for group %r", target_group, exc_info=True)
            raise SessionSaveError(session) from exc
        board.state = BoardState.COMPLETE
        logger.info("Saved session for %r with %d results", target_group, len(session.results))
        return session

    def _resolve_capacity(self, capacity: int | None) -> int:
        """Return validated capacity, defaulting to configuration."""
        if capacity is None:
            return self.config.capacity
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer: {capacity!r}")
        return capacity

    def _ensure_open(self, board: Board) -> None:
        if board.state is BoardState.COMPLETE:
            raise BoardClosedError("Board session has already been saved.")

    def _generated_slot(self, item: Item) -> BoardSlot:
        """Create a generated slot with a fresh instance of an item."""
        instance = run_generator(item.generator, self.rng)
        return BoardSlot(
            id="",
            origin=Origin.GENERATED,
            item_id=item.id,
            topic=item.topic,
            skill=item.skill,
            difficulty=item.difficulty,
            question=instance.question,
            answer=instance.answer,
            image=instance.image,
            item=item,
        )

    def _replace(self, board: Board, slot: BoardSlot, item: Item) -> None:
        """Swap a new item into a slot and clear its grading state."""
        _apply_item(slot, item, run_generator(item.generator, self.rng))
        board.pending_session = None

    def _shared_slot(self, index: int, raw: Mapping[str, Any]) -> BoardSlot:
        """Create a generated slot from one shared-board question."""
        topic = str(raw.get("topic") or "")
        skill = str(raw.get("skill") or topic)
        level = normalize_level(raw.get("difficulty"))
        item: Item | None = None
        generator = raw.get("generator")
        if isinstance(generator, Mapping) and generator.get("name"):
            params = generator.get("params")
            item = Item(
                id=str(raw.get("item_id") or f"shared-{index}"),
                domain=str(raw.get("domain") or ""),
                topic=topic,
                skill=skill,
                difficulty=level,
                generator=GeneratorRef(name=str(generator["name"]), params=dict(params or {})),
            )
        question = raw.get("question_text")
        answer = raw.get("answer_text")
        image = raw.get("image")
        if not isinstance(question, str) or not question:
            if item is not None:
                return self._generated_slot(item)
            question = "-"
        return BoardSlot(
            id="",
            origin=Origin.GENERATED,
            item_id=item.id if item is not None else None,
            topic=topic,
            skill=skill,
            difficulty=level,
            question=question,
            answer=answer if isinstance(answer, str) and answer else "-",
            image=image if isinstance(image, str) else None,
            item=item,
        )


def _new_board(group_id: str, capacity: int) -> Board:
    return Board(group_id=group_id, capacity=capacity, created_at=datetime.now(UTC).isoformat())


def _place_slots(board: Board, slots: list[BoardSlot]) -> None:
    """Assign stable ids in display order and store slots on the board."""
    for index, slot in enumerate(slots):
        slot.id = f"slot-{index}"
        board.slots[slot.id] = slot
        board.order.append(slot.id)


def _slot(board: Board, slot_id: str) -> BoardSlot:
    """Return slot by id or raise."""
    slot = board.get(slot_id)
    if slot is None:
        raise SlotNotFoundError(slot_id)
    return slot


def _review_slot(record: DueRecord) -> BoardSlot:
    """Create a review slot carrying the text the group saw last time."""
    return BoardSlot(
        id="",
        origin=Origin.REVIEW,
        item_id=record.item_id,
        topic=record.topic,
        skill=record.skill,
        difficulty=record.difficulty,
        question=record.question,
        answer=record.answer,
        image=record.image,
    )


def _placeholder_slot(topic: str, level: Level) -> BoardSlot:
    """Create a visible stand-in for a requested topic with no bank items."""
    return BoardSlot(
        id="",
        origin=Origin.GENERATED,
        item_id=None,
        topic=topic,
        skill=topic,
        difficulty=level,
        question=f"No question found for {topic}",
        answer="-",
    )


def _apply_item(slot: BoardSlot, item: Item, instance: GeneratedInstance) -> None:
    """Overwrite slot content with a new instance and reset reveal and rating."""
    slot.item = item
    slot.item_id = item.id
    slot.topic = item.topic
    slot.skill = item.skill
    slot.difficulty = item.difficulty
    slot.question = instance.question
    slot.answer = instance.answer
    slot.image = instance.image
    slot.revealed = False
    slot.rating = None


def _build_session(board: Board, group_id: str) -> Session:
    """Freeze the board's slots and ratings into a session record."""
    results = tuple(
        SessionResult(
            slot_id=slot.id,
            item_id=slot.item_id,
            origin=slot.origin,
            topic=slot.topic,
            skill=slot.skill,
            difficulty=slot.difficulty,
            question=slot.question,
            answer=slot.answer,
            image=slot.image,
            rating=slot.rating,
            interval=interval_for_rating(slot.rating),
        )
        for slot in board.ordered_slots()
    )
    return Session(group_id=group_id, created_at=datetime.now(UTC).isoformat(), results=results)

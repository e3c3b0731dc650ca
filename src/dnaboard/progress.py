"""SQLite persistence for completed sessions and review schedules.

Review timing is counted in lessons, not wall-clock time. Every recorded
session advances its group's lesson count by one. A slot rated in lesson
``L`` with interval ``n`` becomes due once the lesson count reaches
``L + n - 1``, so an interval of 1 puts the item on the very next board.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from .difficulty import normalize_level
from .models import DueRecord, Session

SCHEMA_VERSION = 1


class SchedulingStore(Protocol):
    """External scheduler contract used by the board service."""

    def due_records(self, group_id: str) -> list[DueRecord]: ...

    def record_session(self, session: Session) -> None: ...


@dataclass(frozen=True)
class SessionSummary:
    """One recorded session for history display."""

    id: int
    group_id: str
    lesson_number: int
    created_at: str
    result_count: int
    average_rating: float | None


@dataclass(frozen=True)
class ScheduleEntry:
    """Review schedule snapshot for one item in a group."""

    item_id: str
    topic: str
    question: str
    interval: int
    last_rating: int | None
    rated_lesson: int
    due_lesson: int
    due: bool


@dataclass(frozen=True)
class SharedBoard:
    """Saved board snapshot that can be reopened later."""

    id: int
    name: str
    payload: dict[str, Any]
    created_at: str


class ScheduleStore:
    """Database access layer for sessions and review schedules."""

    def __init__(self, db_path: Path | str) -> None:
        """Initialize database and schema."""
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_path)
        else:
            target = db_path
        self._conn = sqlite3.connect(target)
        self._conn.row_factory = sqlite3.Row
        self._apply_migrations()

    def _apply_migrations(self) -> None:
        """Apply forward-only schema migrations to latest version."""
        current = int(self._conn.execute("PRAGMA user_version").fetchone()[0])
        if current > SCHEMA_VERSION:
            raise RuntimeError(f"Database schema version {current} is newer than supported {SCHEMA_VERSION}.")

        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """)

        for version in range(current + 1, SCHEMA_VERSION + 1):
            if version == 1:
                self._migrate_to_v1()
            with self._conn:
                self._conn.execute(f"PRAGMA user_version = {version}")
                self._conn.execute(
                    "INSERT OR REPLACE INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                    (version, datetime.now(UTC).isoformat()),
                )

    def _migrate_to_v1(self) -> None:
        """Create group, session, schedule and shared-board tables."""
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS class_groups (
                    group_id TEXT PRIMARY KEY,
                    lesson_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    group_id TEXT NOT NULL,
                    lesson_number INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
                """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS session_results (
                    session_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    slot_id TEXT NOT NULL,
                    item_id TEXT,
                    origin TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    skill TEXT NOT NULL,
                    difficulty INTEGER NOT NULL,
                    question TEXT NOT NULL,
                    answer TEXT NOT NULL,
                    image TEXT,
                    rating INTEGER,
                    interval INTEGER NOT NULL,
                    PRIMARY KEY (session_id, position)
                )
                """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS review_schedule (
                    group_id TEXT NOT NULL,
                    item_id TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    skill TEXT NOT NULL,
                    difficulty INTEGER NOT NULL,
                    question TEXT NOT NULL,
                    answer TEXT NOT NULL,
                    image TEXT,
                    interval INTEGER NOT NULL,
                    last_rating INTEGER,
                    rated_lesson INTEGER NOT NULL,
                    due_lesson INTEGER NOT NULL,
                    PRIMARY KEY (group_id, item_id)
                )
                """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS shared_boards (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """)

    def lesson_count(self, group_id: str) -> int:
        """Return number of sessions recorded for a group."""
        row = self._conn.execute("SELECT lesson_count FROM class_groups WHERE group_id = ?", (group_id,)).fetchone()
        if row is None:
            return 0
        return int(row["lesson_count"])

    def due_records(self, group_id: str) -> list[DueRecord]:
        """Return items due for review, most overdue first."""
        rows = self._conn.execute(
            """
            SELECT item_id, topic, skill, difficulty, question, answer, image, due_lesson
            FROM review_schedule
            WHERE group_id = ? AND due_lesson <= ?
            ORDER BY due_lesson ASC, item_id ASC
            """,
            (group_id, self.lesson_count(group_id)),
        ).fetchall()
        return [
            DueRecord(
                item_id=str(row["item_id"]),
                topic=str(row["topic"]),
                skill=str(row["skill"]),
                difficulty=normalize_level(int(row["difficulty"])),
                question=str(row["question"]),
                answer=str(row["answer"]),
                image=row["image"],
                due_lesson=int(row["due_lesson"]),
            )
            for row in rows
        ]

    def record_session(self, session: Session) -> None:
        """Insert a completed session and reschedule its items in one transaction."""
        with self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO class_groups (group_id, lesson_count, created_at) VALUES (?, 0, ?)",
                (session.group_id, session.created_at),
            )
            self._conn.execute(
                "UPDATE class_groups SET lesson_count = lesson_count + 1 WHERE group_id = ?",
                (session.group_id,),
            )
            lesson = int(
                self._conn.execute(
                    "SELECT lesson_count FROM class_groups WHERE group_id = ?", (session.group_id,)
                ).fetchone()["lesson_count"]
            )
            cursor = self._conn.execute(
                "INSERT INTO sessions (group_id, lesson_number, created_at) VALUES (?, ?, ?)",
                (session.group_id, lesson, session.created_at),
            )
            session_id = cursor.lastrowid
            if session_id is None:
                raise RuntimeError("Could not record session.")

            for position, result in enumerate(session.results):
                self._conn.execute(
                    """
                    INSERT INTO session_results (
                        session_id, position, slot_id, item_id, origin, topic, skill,
                        difficulty, question, answer, image, rating, interval
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session_id,
                        position,
                        result.slot_id,
                        result.item_id,
                        result.origin.value,
                        result.topic,
                        result.skill,
                        int(result.difficulty),
                        result.question,
                        result.answer,
                        result.image,
                        result.rating,
                        result.interval,
                    ),
                )
                if result.item_id is None:
                    continue
                self._conn.execute(
                    """
                    INSERT INTO review_schedule (
                        group_id, item_id, topic, skill, difficulty, question, answer,
                        image, interval, last_rating, rated_lesson, due_lesson
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(group_id, item_id) DO UPDATE SET
                        topic = excluded.topic,
                        skill = excluded.skill,
                        difficulty = excluded.difficulty,
                        question = excluded.question,
                        answer = excluded.answer,
                        image = excluded.image,
                        interval = excluded.interval,
                        last_rating = excluded.last_rating,
                        rated_lesson = excluded.rated_lesson,
                        due_lesson = excluded.due_lesson
                    """,
                    (
                        session.group_id,
                        result.item_id,
                        result.topic,
                        result.skill,
                        int(result.difficulty),
                        result.question,
                        result.answer,
                        result.image,
                        result.interval,
                        result.rating,
                        lesson,
                        lesson + result.interval - 1,
                    ),
                )

    def list_sessions(self, group_id: str, limit: int = 20) -> list[SessionSummary]:
        """Return recent sessions for a group, newest first."""
        rows = self._conn.execute(
            """
            SELECT s.id, s.group_id, s.lesson_number, s.created_at,
                   COUNT(r.position) AS result_count,
                   AVG(r.rating) AS average_rating
            FROM sessions s
            LEFT JOIN session_results r ON r.session_id = s.id
            WHERE s.group_id = ?
            GROUP BY s.id
            ORDER BY s.lesson_number DESC
            LIMIT ?
            """,
            (group_id, limit),
        ).fetchall()
        return [
            SessionSummary(
                id=int(row["id"]),
                group_id=str(row["group_id"]),
                lesson_number=int(row["lesson_number"]),
                created_at=str(row["created_at"]),
                result_count=int(row["result_count"]),
                average_rating=float(row["average_rating"]) if row["average_rating"] is not None else None,
            )
            for row in rows
        ]

    def list_schedule(self, group_id: str) -> list[ScheduleEntry]:
        """Return the full review schedule for a group ordered by due lesson."""
        current = self.lesson_count(group_id)
        rows = self._conn.execute(
            """
            SELECT item_id, topic, question, interval, last_rating, rated_lesson, due_lesson
            FROM review_schedule
            WHERE group_id = ?
            ORDER BY due_lesson ASC, item_id ASC
            """,
            (group_id,),
        ).fetchall()
        return [
            ScheduleEntry(
                item_id=str(row["item_id"]),
                topic=str(row["topic"]),
                question=str(row["question"]),
                interval=int(row["interval"]),
                last_rating=int(row["last_rating"]) if row["last_rating"] is not None else None,
                rated_lesson=int(row["rated_lesson"]),
                due_lesson=int(row["due_lesson"]),
                due=int(row["due_lesson"]) <= current,
            )
            for row in rows
        ]

    def save_shared_board(self, name: str, payload: dict[str, Any]) -> int:
        """Store a board snapshot and return its id."""
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO shared_boards (name, payload, created_at) VALUES (?, ?, ?)",
                (name, json.dumps(payload), datetime.now(UTC).isoformat()),
            )
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Could not save shared board.")
        return int(row_id)

    def get_shared_board(self, board_id: int) -> SharedBoard | None:
        """Return one shared board by id."""
        row = self._conn.execute(
            "SELECT id, name, payload, created_at FROM shared_boards WHERE id = ?", (board_id,)
        ).fetchone()
        if row is None:
            return None
        return _shared_board_from_row(row)

    def list_shared_boards(self) -> list[SharedBoard]:
        """Return shared boards, newest first."""
        rows = self._conn.execute(
            "SELECT id, name, payload, created_at FROM shared_boards ORDER BY id DESC"
        ).fetchall()
        return [_shared_board_from_row(row) for row in rows]

    def close(self) -> None:
        """Close db connection."""
        self._conn.close()

    def __del__(self) -> None:  # pragma: no cover
        """Best-effort connection cleanup."""
        try:
            self.close()
        except Exception:
            pass


def _shared_board_from_row(row: sqlite3.Row) -> SharedBoard:
    """Build a shared board from a database row."""
    payload = json.loads(str(row["payload"]))
    return SharedBoard(
        id=int(row["id"]),
        name=str(row["name"]),
        payload=payload if isinstance(payload, dict) else {},
        created_at=str(row["created_at"]),
    )

"""CLI entrypoint for running practice boards in the terminal."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from pathlib import Path

from .config import EngineConfig
from .content_loader import load_item_rows
from .difficulty import difficulty_label, normalize_level
from .models import Board, Origin, ScopeFilter
from .pool import ItemBank
from .progress import ScheduleStore
from .service import BoardError, BoardService, SessionSaveError

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
QUIT_COMMANDS = {"q", ":q", ":quit", ":exit"}
YES_ANSWERS = {"y", "yes"}

HELP_LINES = (
    "Actions:",
    "  r N         reveal/hide answer for slot N",
    "  N SCORE     rate slot N (0, 25, 75, 100)",
    "  g N         regenerate slot N",
    "  l N LEVEL   retarget slot N to level 1, 2 or 3",
    "  s N         swap slot N for a random question",
    "  x           reset all ratings",
    "  share NAME  save this board so it can be reopened with play --shared",
    "  c           save session",
    "  q           quit without saving",
)


def _stores(config: EngineConfig) -> tuple[ItemBank, ScheduleStore]:
    """Create the bundled question bank and the local scheduling store."""
    return ItemBank(load_item_rows()), ScheduleStore(config.db_path)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dnaboard", description="Spaced-repetition practice boards")
    parser.add_argument("--db", type=Path, help="schedule database path")
    parser.add_argument("--seed", type=int, help="random seed for reproducible boards")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command")

    play = commands.add_parser("play", help="run a board for a class")
    play.add_argument("--group", required=True, help="class/group name")
    play.add_argument("--topic", action="append", default=[], help="restrict to a topic (repeatable)")
    play.add_argument("--skill", action="append", default=[], help="restrict to a skill (repeatable)")
    play.add_argument("--domain", help="restrict to a domain")
    play.add_argument("--level", help="restrict to a difficulty level")
    play.add_argument("--capacity", type=int, help="number of slots")
    play.add_argument("--shared", type=int, metavar="ID", help="open a saved shared board instead of building one")

    commands.add_parser("topics", help="list bank topics")
    commands.add_parser("shared", help="list saved shared boards")

    history = commands.add_parser("history", help="list saved sessions for a class")
    history.add_argument("--group", required=True)

    schedule = commands.add_parser("schedule", help="show the review schedule for a class")
    schedule.add_argument("--group", required=True)
    return parser


def run(argv: list[str] | None = None, input_fn: InputFn = input, print_fn: PrintFn = print) -> int:
    """Run the CLI application."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command is None:
        parser.print_help()
        return 2

    try:
        base = EngineConfig.from_env()
    except ValueError as exc:
        print_fn(f"Error: {exc}")
        return 2
    config = EngineConfig(
        capacity=base.capacity,
        db_path=args.db if args.db is not None else base.db_path,
        seed=args.seed if args.seed is not None else base.seed,
    )
    bank, store = _stores(config)
    try:
        if args.command == "topics":
            _topics_flow(bank, print_fn)
            return 0
        if args.command == "history":
            _history_flow(store, args.group, print_fn)
            return 0
        if args.command == "schedule":
            _schedule_flow(store, args.group, print_fn)
            return 0
        if args.command == "shared":
            _shared_flow(store, print_fn)
            return 0

        service = BoardService(bank, store, config=config)
        if args.shared is not None:
            return open_shared_board(service, store, args.shared, args.group, input_fn, print_fn)
        scope = ScopeFilter(
            topics=tuple(args.topic),
            skills=tuple(args.skill),
            domain=args.domain,
            difficulty=normalize_level(args.level) if args.level else None,
        )
        return play_board(service, args.group, scope, args.capacity, input_fn, print_fn, shared_store=store)
    finally:
        store.close()


def play_board(
    service: BoardService,
    group_id: str,
    scope: ScopeFilter,
    capacity: int | None,
    input_fn: InputFn,
    print_fn: PrintFn,
    shared_store: ScheduleStore | None = None,
) -> int:
    """Build a board and run it until it is saved or abandoned."""
    try:
        board = service.build_board(group_id, scope, capacity)
    except ValueError as exc:
        print_fn(f"Error: {exc}")
        return 2
    if len(board) == 0:
        print_fn("No questions available for this class and scope.")
        return 1
    if len(board) < board.capacity:
        print_fn(f"Only {len(board)} of {board.capacity} slots could be filled.")
    return _board_loop(service, board, input_fn, print_fn, shared_store)


def open_shared_board(
    service: BoardService,
    store: ScheduleStore,
    board_id: int,
    group_id: str,
    input_fn: InputFn,
    print_fn: PrintFn,
) -> int:
    """Reopen a saved shared board for a group and run it."""
    shared = store.get_shared_board(board_id)
    if shared is None:
        print_fn(f"No shared board #{board_id}.")
        return 1
    try:
        board = service.board_from_shared(shared.payload, group_id=group_id)
    except ValueError as exc:
        print_fn(f"Error: {exc}")
        return 1
    print_fn(f"Opened shared board '{shared.name}'.")
    return _board_loop(service, board, input_fn, print_fn, store)


def _board_loop(
    service: BoardService,
    board: Board,
    input_fn: InputFn,
    print_fn: PrintFn,
    shared_store: ScheduleStore | None,
) -> int:
    print_fn(f"\n=== {board.group_id} ===")
    print_fn("Type h for help.")
    while True:
        _print_board(board, print_fn)
        raw = input_fn("Action: ").strip()
        lowered = raw.lower()
        if lowered in QUIT_COMMANDS:
            print_fn("Board discarded.")
            return 0
        if lowered == "h":
            for line in HELP_LINES:
                print_fn(line)
            continue
        if lowered == "x":
            service.reset_ratings(board)
            continue
        if lowered == "c":
            if _save_flow(service, board, input_fn, print_fn):
                return 0
            continue
        if lowered == "share" or lowered.startswith("share "):
            _share_board_flow(service, board, shared_store, raw[len("share") :].strip(), print_fn)
            continue
        try:
            _apply_action(service, board, lowered.split(), print_fn)
        except (BoardError, ValueError) as exc:
            print_fn(f"Error: {exc}")


def _apply_action(service: BoardService, board: Board, parts: list[str], print_fn: PrintFn) -> None:
    """Dispatch one slot action."""
    if len(parts) == 2 and parts[0].isdigit():
        slot_id = _slot_id(board, parts[0])
        service.rate(board, slot_id, int(parts[1]))
        if service.is_fully_rated(board):
            print_fn("All slots rated. Type c to save the session.")
        return
    if len(parts) == 2 and parts[0] == "r":
        service.reveal(board, _slot_id(board, parts[1]))
        return
    if len(parts) == 2 and parts[0] == "g":
        service.regenerate(board, _slot_id(board, parts[1]))
        return
    if len(parts) == 2 and parts[0] == "s":
        change = service.swap(board, _slot_id(board, parts[1]))
        if change.warning:
            print_fn(change.warning)
        return
    if len(parts) == 3 and parts[0] == "l":
        change = service.retarget(board, _slot_id(board, parts[1]), parts[2])
        if change.warning:
            print_fn(change.warning)
        return
    print_fn("Invalid action. Type h for help.")


def _slot_id(board: Board, position: str) -> str:
    """Map a 1-based display position to a slot id."""
    if not position.isdigit() or not (1 <= int(position) <= len(board)):
        raise ValueError(f"No slot {position}.")
    return board.order[int(position) - 1]


def _save_flow(service: BoardService, board: Board, input_fn: InputFn, print_fn: PrintFn) -> bool:
    """Save the session, offering retries on failure. Return whether it was saved."""
    if not service.is_fully_rated(board):
        confirm = input_fn("Not every slot is rated. Save anyway? (y/n): ").strip().lower()
        if confirm not in YES_ANSWERS:
            return False
    while True:
        try:
            session = service.complete_session(board)
        except SessionSaveError:
            retry = input_fn("Could not save session. Retry? (y/n): ").strip().lower()
            if retry in YES_ANSWERS:
                continue
            print_fn("Session not saved.")
            return False
        intervals = ", ".join(str(result.interval) for result in session.results)
        print_fn(f"Session saved. Next review in lessons: {intervals}")
        return True


def _share_board_flow(
    service: BoardService, board: Board, store: ScheduleStore | None, name: str, print_fn: PrintFn
) -> None:
    """Save the board's current questions as a shared board."""
    if store is None:
        print_fn("Sharing needs a schedule database.")
        return
    payload = service.share_config(board, name or None)
    board_id = store.save_shared_board(payload["class_name"], payload)
    print_fn(f"Board shared as #{board_id}. Reopen it with: play --group NAME --shared {board_id}")


def _print_board(board: Board, print_fn: PrintFn) -> None:
    """Print slots in display order."""
    print_fn("")
    for position, slot in enumerate(board.ordered_slots(), start=1):
        marker = "↺ " if slot.origin is Origin.REVIEW else ""
        rating = f" [rated {slot.rating}]" if slot.rating is not None else ""
        print_fn(f"{position}) {marker}{slot.topic} {difficulty_label(slot.difficulty)}{rating}")
        print_fn(f"   Q: {slot.question}")
        if slot.image:
            print_fn("   (diagram)")
        if slot.revealed:
            print_fn(f"   A: {slot.answer}")


def _topics_flow(bank: ItemBank, print_fn: PrintFn) -> None:
    """Print bank topics with item counts per level."""
    topics = bank.topics()
    if not topics:
        print_fn("Question bank is empty.")
        return
    width = max(len("Topic"), max(len(topic) for topic in topics))
    header = f"{'Topic':<{width}} {'L1':>3} {'L2':>3} {'L3':>3}"
    print_fn(header)
    print_fn("-" * len(header))
    for topic in topics:
        counts = bank.level_counts(topic)
        print_fn(f"{topic:<{width}} {counts[1]:>3} {counts[2]:>3} {counts[3]:>3}")


def _history_flow(store: ScheduleStore, group_id: str, print_fn: PrintFn) -> None:
    """Print recent sessions for a group."""
    sessions = store.list_sessions(group_id)
    if not sessions:
        print_fn(f"No sessions saved for {group_id}.")
        return
    for summary in sessions:
        average = f"{summary.average_rating:.0f}%" if summary.average_rating is not None else "-"
        print_fn(
            f"Lesson {summary.lesson_number}: {summary.created_at[:10]} "
            f"{summary.result_count} questions, average {average}"
        )


def _schedule_flow(store: ScheduleStore, group_id: str, print_fn: PrintFn) -> None:
    """Print the review schedule for a group."""
    entries = store.list_schedule(group_id)
    if not entries:
        print_fn(f"Nothing scheduled for {group_id}.")
        return
    print_fn(f"Lessons recorded: {store.lesson_count(group_id)}")
    for entry in entries:
        status = "due" if entry.due else f"due at lesson {entry.due_lesson}"
        print_fn(f"- {entry.item_id} ({entry.topic}): {status}")


def _shared_flow(store: ScheduleStore, print_fn: PrintFn) -> None:
    """Print saved shared boards, newest first."""
    boards = store.list_shared_boards()
    if not boards:
        print_fn("No shared boards saved.")
        return
    for shared in boards:
        questions = shared.payload.get("questions")
        count = len(questions) if isinstance(questions, list) else 0
        print_fn(f"#{shared.id} {shared.name}: {count} questions, saved {shared.created_at[:10]}")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()

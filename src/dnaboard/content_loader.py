"""Load the declarative question bank from bundled JSON resources."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

from .generators import get_generator
from .models import GeneratorRef
from .pool import RawItemRow

CONTENT_PACKAGE = "dnaboard.content.items"
DEFAULT_DIFFICULTY = "••"


def _generator_from_dict(item_id: str, raw: Any) -> GeneratorRef:
    """Build a generator reference from raw JSON content."""
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict) or not str(raw.get("name", "")).strip():
        raise ValueError(f"Item '{item_id}' has no generator name.")
    name = str(raw["name"]).strip()
    if get_generator(name) is None:
        raise ValueError(f"Item '{item_id}' references unknown generator '{name}'.")
    params = raw.get("params", {})
    if not isinstance(params, dict):
        raise ValueError(f"Item '{item_id}' generator params must be an object.")
    return GeneratorRef(name=name, params=dict(params))


def _row_from_dict(domain: str, raw: dict[str, Any]) -> RawItemRow:
    """Build one bank row from raw JSON content."""
    item_id = str(raw.get("id", "")).strip()
    if not item_id:
        raise ValueError(f"Item in domain '{domain}' has no id.")
    topic = str(raw.get("topic", "")).strip()
    if not topic:
        raise ValueError(f"Item '{item_id}' has no topic.")
    skill = str(raw.get("skill", "")).strip() or topic

    difficulty = raw.get("difficulty", DEFAULT_DIFFICULTY)
    if not isinstance(difficulty, int | str) or isinstance(difficulty, bool):
        difficulty = DEFAULT_DIFFICULTY

    return RawItemRow(
        id=item_id,
        domain=str(raw.get("domain", domain)),
        topic=topic,
        skill=skill,
        difficulty=difficulty,
        generator=_generator_from_dict(item_id, raw.get("generator")),
    )


def _rows_from_document(raw: dict[str, Any]) -> list[RawItemRow]:
    """Build rows from one bank file."""
    domain = str(raw.get("domain", "general"))
    return [_row_from_dict(domain, item) for item in raw.get("items", [])]


def load_item_rows() -> list[RawItemRow]:
    """Load the bundled question bank."""
    rows: list[RawItemRow] = []
    entries = sorted(resources.files(CONTENT_PACKAGE).iterdir(), key=lambda entry: entry.name)
    for entry in entries:
        if entry.name.endswith(".json"):
            rows.extend(_rows_from_document(json.loads(entry.read_text(encoding="utf-8-sig"))))
    _validate_unique_item_ids(rows)
    return rows


def load_item_rows_from_dir(path: Path) -> list[RawItemRow]:
    """Load a question bank from a directory for tests/tools."""
    rows: list[RawItemRow] = []
    for file_path in sorted(path.glob("*.json")):
        rows.extend(_rows_from_document(json.loads(file_path.read_text(encoding="utf-8-sig"))))
    _validate_unique_item_ids(rows)
    return rows


def _validate_unique_item_ids(rows: list[RawItemRow]) -> None:
    """Validate that item ids are unique across all bank files."""
    seen: set[str] = set()
    for row in rows:
        if row.id in seen:
            raise ValueError(f"Duplicate item id: {row.id}")
        seen.add(row.id)

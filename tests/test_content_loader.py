import json
from pathlib import Path

import pytest

from dnaboard.content_loader import load_item_rows, load_item_rows_from_dir
from dnaboard.difficulty import Level
from dnaboard.generators import get_generator


def _write(path: Path, name: str, payload: object) -> None:
    (path / name).write_text(json.dumps(payload), encoding="utf-8")


def test_bundled_bank_loads_with_known_generators() -> None:
    rows = load_item_rows()
    assert len(rows) > 10
    assert len({row.id for row in rows}) == len(rows)
    assert all(get_generator(row.generator.name) is not None for row in rows)
    assert {"Number", "Algebra", "Geometry"} <= {row.domain for row in rows}


def test_bundled_bank_covers_every_level() -> None:
    levels = {row.to_item().difficulty for row in load_item_rows()}
    assert levels == {Level.LEVEL_1, Level.LEVEL_2, Level.LEVEL_3}


def test_load_from_dir_applies_defaults(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "bank.json",
        {
            "domain": "Number",
            "items": [
                {"id": "a", "topic": "Addition", "generator": "addition"},
                {
                    "id": "b",
                    "topic": "Addition",
                    "skill": "Carrying",
                    "difficulty": "Hard",
                    "generator": {"name": "addition", "params": {"low": 10}},
                },
                {"id": "c", "topic": "Addition", "difficulty": True, "domain": "Other", "generator": "addition"},
            ],
        },
    )
    rows = load_item_rows_from_dir(tmp_path)
    assert [row.id for row in rows] == ["a", "b", "c"]
    assert rows[0].skill == "Addition"
    assert rows[0].difficulty == "••"
    assert rows[0].domain == "Number"
    assert rows[1].skill == "Carrying"
    assert rows[1].to_item().difficulty is Level.LEVEL_3
    assert rows[1].generator.params == {"low": 10}
    assert rows[2].difficulty == "••"
    assert rows[2].domain == "Other"


def test_duplicate_ids_across_files_rejected(tmp_path: Path) -> None:
    _write(tmp_path, "a.json", {"items": [{"id": "x", "topic": "T", "generator": "addition"}]})
    _write(tmp_path, "b.json", {"items": [{"id": "x", "topic": "T", "generator": "addition"}]})
    with pytest.raises(ValueError, match="Duplicate item id: x"):
        load_item_rows_from_dir(tmp_path)


def test_unknown_generator_rejected(tmp_path: Path) -> None:
    _write(tmp_path, "a.json", {"items": [{"id": "x", "topic": "T", "generator": {"name": "eval"}}]})
    with pytest.raises(ValueError, match="unknown generator 'eval'"):
        load_item_rows_from_dir(tmp_path)


def test_missing_fields_rejected(tmp_path: Path) -> None:
    cases = [
        ({"topic": "T", "generator": "addition"}, "has no id"),
        ({"id": "x", "generator": "addition"}, "has no topic"),
        ({"id": "x", "topic": "T"}, "has no generator name"),
        ({"id": "x", "topic": "T", "generator": {"name": "addition", "params": [1]}}, "params must be an object"),
    ]
    for item, message in cases:
        _write(tmp_path, "a.json", {"items": [item]})
        with pytest.raises(ValueError, match=message):
            load_item_rows_from_dir(tmp_path)

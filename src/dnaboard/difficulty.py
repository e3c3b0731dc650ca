"""Canonical difficulty levels and the raw encodings that map onto them.

Question banks store difficulty in several shapes: dot tiers (``•``, ``••``,
``•••``), numeric strings, and labels such as ``Easy`` or ``Level 3``.
Everything inside the engine works with :class:`Level`; raw values are
normalized once when rows leave the pool store.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Level(IntEnum):
    """Canonical three-tier difficulty."""

    LEVEL_1 = 1
    LEVEL_2 = 2
    LEVEL_3 = 3


DEFAULT_LEVEL = Level.LEVEL_2

# Keys are stored lowercase; lookups try the exact text first, then lowercase.
_ALIASES: dict[str, Level] = {
    "•": Level.LEVEL_1,
    "1": Level.LEVEL_1,
    "easy": Level.LEVEL_1,
    "level 1": Level.LEVEL_1,
    "••": Level.LEVEL_2,
    "2": Level.LEVEL_2,
    "medium": Level.LEVEL_2,
    "level 2": Level.LEVEL_2,
    "•••": Level.LEVEL_3,
    "3": Level.LEVEL_3,
    "hard": Level.LEVEL_3,
    "level 3": Level.LEVEL_3,
}

_DISPLAY_NAMES = {
    Level.LEVEL_1: "Easy",
    Level.LEVEL_2: "Medium",
    Level.LEVEL_3: "Hard",
}


@dataclass(frozen=True)
class DifficultyInfo:
    """Display metadata for one level."""

    level: Level
    label: str
    name: str
    css_class: str


def normalize_level(raw: object) -> Level:
    """Map any difficulty encoding to a canonical level, defaulting to Level 2."""
    if isinstance(raw, Level):
        return raw
    if isinstance(raw, bool):
        return DEFAULT_LEVEL
    if isinstance(raw, int):
        return Level(raw) if 1 <= raw <= 3 else DEFAULT_LEVEL
    if isinstance(raw, str):
        text = raw.strip()
        level = _ALIASES.get(text)
        if level is None:
            level = _ALIASES.get(text.lower())
        return level if level is not None else DEFAULT_LEVEL
    return DEFAULT_LEVEL


def difficulty_variations(level: object) -> tuple[str, ...]:
    """Return every raw encoding that should match a level in stored data.

    Labels are returned in their lowercase, capitalized and title-cased
    spellings, since stored rows are compared by exact text.
    """
    target = normalize_level(level)
    variations: list[str] = []
    for alias, alias_level in _ALIASES.items():
        if alias_level is not target:
            continue
        for spelling in (alias, alias.capitalize(), alias.title()):
            if spelling not in variations:
                variations.append(spelling)
    return tuple(variations)


def is_same_difficulty(left: object, right: object) -> bool:
    """Return whether two raw encodings normalize to the same level."""
    return normalize_level(left) is normalize_level(right)


def difficulty_label(raw: object) -> str:
    """Return the dot label for a difficulty."""
    return "•" * int(normalize_level(raw))


def difficulty_info(raw: object) -> DifficultyInfo:
    """Return display metadata for any difficulty encoding."""
    level = normalize_level(raw)
    return DifficultyInfo(
        level=level,
        label=difficulty_label(level),
        name=_DISPLAY_NAMES[level],
        css_class=f"level-{int(level)}",
    )


DIFFICULTY_OPTIONS: tuple[tuple[str, Level], ...] = tuple(
    (f"Level {int(level)} ({difficulty_label(level)})", level) for level in Level
)

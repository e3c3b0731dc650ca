"""Performance rating to review interval lookup."""

from __future__ import annotations

VALID_RATINGS: tuple[int, ...] = (0, 25, 75, 100)

# Intervals are measured in lessons (recorded sessions for a group).
RATING_INTERVALS: dict[int, int] = {0: 1, 25: 3, 75: 6, 100: 12}
DEFAULT_INTERVAL = 1


def interval_for_rating(rating: object) -> int:
    """Return the number of lessons before a rated item is due again."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        return DEFAULT_INTERVAL
    return RATING_INTERVALS.get(rating, DEFAULT_INTERVAL)


def is_valid_rating(rating: object) -> bool:
    """Return whether a value is one of the four rating levels."""
    return isinstance(rating, int) and not isinstance(rating, bool) and rating in VALID_RATINGS

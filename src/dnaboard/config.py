"""Engine configuration with validation on construction."""

from __future__ import annotations

import os
import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CAPACITY = 6
DEFAULT_DB_PATH = Path(".dnaboard") / "schedule.db"


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings shared by the board service and CLI (immutable).

    Attributes:
        capacity: Default number of slots on a board
        db_path: SQLite file backing the scheduling store
        seed: Random seed for reproducible boards (None = unseeded)

    Environment overrides (see ``from_env``):
        DNABOARD_CAPACITY, DNABOARD_DB, DNABOARD_SEED
    """

    capacity: int = DEFAULT_CAPACITY
    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    seed: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise ValueError(f"capacity must be an integer: {self.capacity!r}")
        if self.capacity <= 0:
            raise ValueError(f"capacity must be positive: {self.capacity}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build configuration from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        capacity = _parse_int(env, "DNABOARD_CAPACITY")
        seed = _parse_int(env, "DNABOARD_SEED")
        db_value = env.get("DNABOARD_DB", "").strip()
        return cls(
            capacity=DEFAULT_CAPACITY if capacity is None else capacity,
            db_path=Path(db_value) if db_value else DEFAULT_DB_PATH,
            seed=seed,
        )

    def make_rng(self) -> random.Random:
        """Return a random source seeded from this configuration."""
        return random.Random(self.seed)


def _parse_int(env: Mapping[str, str], name: str) -> int | None:
    """Parse an optional integer environment variable."""
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer: {raw!r}") from None

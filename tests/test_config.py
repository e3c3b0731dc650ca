from pathlib import Path

import pytest

from dnaboard.config import DEFAULT_CAPACITY, DEFAULT_DB_PATH, EngineConfig


def test_defaults() -> None:
    config = EngineConfig()
    assert config.capacity == DEFAULT_CAPACITY == 6
    assert config.db_path == DEFAULT_DB_PATH
    assert config.seed is None


@pytest.mark.parametrize("capacity", [0, -1])
def test_capacity_must_be_positive(capacity: int) -> None:
    with pytest.raises(ValueError, match="positive"):
        EngineConfig(capacity=capacity)


@pytest.mark.parametrize("capacity", [True, "6", 2.5])
def test_capacity_must_be_integer(capacity: object) -> None:
    with pytest.raises(ValueError, match="integer"):
        EngineConfig(capacity=capacity)  # type: ignore[arg-type]


def test_from_env_reads_overrides() -> None:
    config = EngineConfig.from_env({"DNABOARD_CAPACITY": " 9 ", "DNABOARD_DB": "/tmp/x.db", "DNABOARD_SEED": "42"})
    assert config.capacity == 9
    assert config.db_path == Path("/tmp/x.db")
    assert config.seed == 42


def test_from_env_blank_values_use_defaults() -> None:
    config = EngineConfig.from_env({"DNABOARD_CAPACITY": "", "DNABOARD_DB": "  "})
    assert config == EngineConfig()


def test_from_env_rejects_non_integer() -> None:
    with pytest.raises(ValueError, match="DNABOARD_SEED must be an integer"):
        EngineConfig.from_env({"DNABOARD_SEED": "abc"})


def test_from_env_uses_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DNABOARD_CAPACITY", "3")
    monkeypatch.delenv("DNABOARD_SEED", raising=False)
    monkeypatch.delenv("DNABOARD_DB", raising=False)
    assert EngineConfig.from_env().capacity == 3


def test_seeded_rng_is_reproducible() -> None:
    first = EngineConfig(seed=5).make_rng()
    second = EngineConfig(seed=5).make_rng()
    assert [first.randint(1, 100) for _ in range(5)] == [second.randint(1, 100) for _ in range(5)]

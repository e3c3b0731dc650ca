"""Practice board composition and lesson-based review scheduling."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]


def _source_version() -> str | None:
    """Return [project].version from the checkout this package is imported from, if any."""
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    if not pyproject.is_file():
        return None
    with pyproject.open("rb") as handle:
        project = tomllib.load(handle).get("project", {})
    if project.get("name") != "dnaboard":
        return None
    return project.get("version")


def _installed_version() -> str:
    try:
        return version("dnaboard")
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _source_version() or _installed_version()

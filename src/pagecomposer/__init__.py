"""Pagecomposer package initialization."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from importlib import metadata
from pathlib import Path

PACKAGE_NAME = "pagecomposer"


def _find_pyproject(start: Path) -> Path | None:
    for candidate in (start, *start.parents):
        path = candidate / "pyproject.toml"
        if path.is_file():
            return path
    return None


def _read_version_from_pyproject(pyproject: Path) -> str | None:
    try:
        with pyproject.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError):  # pragma: no cover - filesystem errors
        return None

    project = data.get("project")
    if not isinstance(project, dict) or project.get("name") != PACKAGE_NAME:
        return None

    version = project.get("version")
    if not isinstance(version, str) or not version.strip():
        return None

    return version.strip()


@lru_cache(maxsize=1)
def get_version() -> str:
    """Return the Pagecomposer version.

    A source checkout reads `[project].version` from `pyproject.toml`; an installed package
    falls back to the distribution metadata generated from the same file.
    """

    pyproject = _find_pyproject(Path(__file__).resolve().parent)
    if pyproject is not None:
        version = _read_version_from_pyproject(pyproject)
        if version is not None:
            return version

    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError as exc:  # pragma: no cover - occurs in dev
        raise RuntimeError("Unable to determine Pagecomposer version.") from exc


__all__ = ["get_version"]

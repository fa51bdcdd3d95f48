"""Unit coverage for the project version helper."""

from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path

from swetax.backend.version import get_project_version, get_version_info


def read_pyproject_version() -> str:
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    in_project = False
    for raw_line in pyproject_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("["):
            in_project = line == "[project]"
            continue
        match = re.match(r'version\s*=\s*"([^"]+)"', line)
        if in_project and match:
            return match.group(1)
    raise RuntimeError("Version not found in pyproject.toml")


def test_get_project_version_prefers_installed_metadata(monkeypatch) -> None:
    get_project_version.cache_clear()
    monkeypatch.setattr(metadata, "version", lambda package: "9.9.9")

    try:
        assert get_project_version() == "9.9.9"
    finally:
        get_project_version.cache_clear()


def test_get_project_version_falls_back_to_pyproject(monkeypatch) -> None:
    get_project_version.cache_clear()

    def raise_package_not_found(_: str) -> str:
        raise metadata.PackageNotFoundError

    monkeypatch.setattr(metadata, "version", raise_package_not_found)

    try:
        assert get_project_version() == read_pyproject_version()
    finally:
        get_project_version.cache_clear()


def test_version_info_lists_tax_years() -> None:
    info = get_version_info()

    assert info["tax_years"] == [2025, 2026]
    assert info["current_tax_year"] == 2026
    assert isinstance(info["version"], str)

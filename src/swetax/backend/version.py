"""Version information for the package and its bundled tax year tables."""

from __future__ import annotations

import re
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Any, Final

from swetax.backend.config.year_config import available_years, current_year

PACKAGE_NAME: Final = "swetax"
PYPROJECT_PATH: Final = Path(__file__).resolve().parents[3] / "pyproject.toml"

_PROJECT_VERSION = re.compile(
    r"^\[project\][^\[]*?^version\s*=\s*\"([^\"]+)\"", re.MULTILINE | re.DOTALL
)


@lru_cache(maxsize=1)
def get_project_version() -> str:
    """Return the installed version, or the one declared in ``pyproject.toml``."""

    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        pass

    if not PYPROJECT_PATH.exists():  # pragma: no cover - repository invariant
        raise RuntimeError(f"Unable to locate project metadata at {PYPROJECT_PATH}")

    match = _PROJECT_VERSION.search(PYPROJECT_PATH.read_text(encoding="utf-8"))
    if match is None:
        raise RuntimeError("Unable to determine project version from pyproject.toml")
    return match.group(1)


def get_version_info() -> dict[str, Any]:
    """Describe the package version together with the configured tax years."""

    return {
        "version": get_project_version(),
        "tax_years": list(available_years()),
        "current_tax_year": current_year(),
    }


__all__ = ["get_project_version", "get_version_info"]

"""Discover and load the bundled per-year tax tables.

Every tax year lives in its own YAML file under ``data/``. The manifest in the
same directory decides which years exist and which of them is current, so a
new year is added by dropping in a file and a manifest entry.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .schema import (
    BasicDeductionConfig,
    ConfigurationError,
    DefaultRates,
    IncomeReductionConfig,
    JobTaxCreditConfig,
    LinearBand,
    PensionContributionConfig,
    PublicServiceFeeConfig,
    StateTaxConfig,
    TaxYearManifest,
    TaxYearManifestEntry,
    YearConfiguration,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
MANIFEST_FILE = CONFIG_DIRECTORY / "manifest.yaml"

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def _read_mapping(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping at the top level")
    return content


def _parse(model: type[_ModelT], raw: dict[str, Any], context: str) -> _ModelT:
    try:
        return model.model_validate(raw)
    except ValidationError as error:
        raise ConfigurationError(f"Invalid {context}: {error}") from error


@lru_cache(maxsize=1)
def load_manifest() -> TaxYearManifest:
    """Return the parsed manifest of configured tax years."""

    if not MANIFEST_FILE.exists():
        raise FileNotFoundError(f"Tax year manifest missing: {MANIFEST_FILE}")
    return _parse(TaxYearManifest, _read_mapping(MANIFEST_FILE), "tax year manifest")


def _year_file(year: int) -> Path:
    try:
        entry: TaxYearManifestEntry = load_manifest().get_entry(year)
    except KeyError as exc:
        raise FileNotFoundError(f"Tax year {year} is not listed in the manifest") from exc

    path = CONFIG_DIRECTORY / entry.resolved_filename
    if not path.exists():
        raise FileNotFoundError(f"Tax year {year} is listed but {path.name} does not exist")
    return path


@lru_cache(maxsize=8)
def load_year_configuration(year: int) -> YearConfiguration:
    """Load, validate and cache the tables for ``year``."""

    raw = _read_mapping(_year_file(year))
    raw.setdefault("year", year)
    configuration = _parse(YearConfiguration, raw, f"configuration for {year}")

    if configuration.year != year:
        raise ConfigurationError(
            f"Configuration year mismatch: expected {year}, found {configuration.year}"
        )
    return configuration


def available_years() -> Sequence[int]:
    """Return every configured tax year in ascending order."""

    return load_manifest().supported_years


def current_year() -> int:
    """Return the most recent year marked ``active`` in the manifest."""

    return load_manifest().current_year


__all__ = [
    "BasicDeductionConfig",
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "DefaultRates",
    "IncomeReductionConfig",
    "JobTaxCreditConfig",
    "LinearBand",
    "MANIFEST_FILE",
    "PensionContributionConfig",
    "PublicServiceFeeConfig",
    "StateTaxConfig",
    "TaxYearManifest",
    "TaxYearManifestEntry",
    "YearConfiguration",
    "available_years",
    "current_year",
    "load_manifest",
    "load_year_configuration",
]

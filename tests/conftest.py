"""Test configuration utilities and shared fixtures."""

import sys
from decimal import Decimal
from pathlib import Path

# Make ``src`` importable when pytest runs from a plain checkout.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402

from swetax.backend.config.year_config import (  # noqa: E402
    YearConfiguration,
    load_year_configuration,
)
from swetax.backend.models import RateSet  # noqa: E402


@pytest.fixture()
def config_2026() -> YearConfiguration:
    """Return the 2026 year configuration."""

    return load_year_configuration(2026)


@pytest.fixture()
def reference_rates() -> RateSet:
    """Rates of the documented reference calculation."""

    return RateSet(
        local_tax_rate=Decimal("0.228"),
        regional_tax_rate=Decimal("0.1185"),
        burial_fee_rate=Decimal("0.00292"),
        church_fee_rate=Decimal("0"),
    )

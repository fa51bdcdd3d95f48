"""Utilities for validating year configuration data and surfacing issues."""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Sequence

from .year_config import (
    ConfigurationError,
    DefaultRates,
    IncomeReductionConfig,
    LinearBand,
    PensionContributionConfig,
    PublicServiceFeeConfig,
    YearConfiguration,
    available_years,
    load_year_configuration,
)


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_bands(scope: str, bands: Sequence[LinearBand]) -> list[str]:
    errors: list[str] = []

    if not bands:
        errors.append(_format_scope(scope, "no bands defined"))
        return errors

    uppers = [band.upper_bound for band in bands[:-1]]
    if any(upper is None for upper in uppers):
        errors.append(_format_scope(scope, "only the final band may be open-ended"))
    elif uppers != sorted(uppers) or len(set(uppers)) != len(uppers):
        errors.append(_format_scope(scope, "band upper bounds must be strictly ascending"))

    if bands[-1].upper_bound is not None:
        errors.append(_format_scope(scope, "final band must have an open upper bound"))

    return errors


def band_discontinuities(
    bands: Sequence[LinearBand], base_amount: Decimal
) -> list[tuple[Decimal, Decimal]]:
    """Return ``(boundary, jump)`` for every boundary between adjacent bands."""

    jumps: list[tuple[Decimal, Decimal]] = []
    for lower_band, upper_band in zip(bands, bands[1:]):
        boundary = lower_band.upper_amount(base_amount)
        if boundary is None:
            continue
        below = lower_band.evaluate(boundary, base_amount)
        above = upper_band.evaluate(boundary, base_amount)
        jumps.append((boundary, abs(above - below)))
    return jumps


def _validate_continuity(
    scope: str, bands: Sequence[LinearBand], base_amount: Decimal, tolerance: Decimal
) -> list[str]:
    errors: list[str] = []
    for boundary, jump in band_discontinuities(bands, base_amount):
        if jump > tolerance:
            errors.append(
                _format_scope(
                    scope,
                    f"value jumps by {jump} at {boundary}, more than the rounding step {tolerance}",
                )
            )
    return errors


def _validate_pension(config: PensionContributionConfig) -> list[str]:
    errors: list[str] = []
    if config.minimum_income > config.income_ceiling:
        errors.append(
            _format_scope(
                "pension_contribution", "minimum income cannot exceed the income ceiling"
            )
        )
    if config.maximum > config.income_ceiling * config.rate + config.rounding_step:
        errors.append(
            _format_scope(
                "pension_contribution",
                "maximum is unreachable given the income ceiling and rate",
            )
        )
    return errors


def _validate_income_reduction(config: IncomeReductionConfig) -> list[str]:
    errors: list[str] = []
    plateau = (config.ceiling - config.threshold) * config.rate
    if abs(plateau - config.maximum) > 1:
        errors.append(
            _format_scope(
                "income_reduction",
                f"ceiling implies a maximum of {plateau}, configured {config.maximum}",
            )
        )
    return errors


def _validate_public_service_fee(config: PublicServiceFeeConfig) -> list[str]:
    errors: list[str] = []
    implied = config.threshold * config.rate
    if abs(implied - config.maximum) > 1:
        errors.append(
            _format_scope(
                "public_service_fee",
                f"threshold implies a maximum of {implied}, configured {config.maximum}",
            )
        )
    return errors


def _validate_default_rates(rates: DefaultRates) -> list[str]:
    errors: list[str] = []
    if rates.local_tax_rate + rates.regional_tax_rate >= 1:
        errors.append(
            _format_scope("default_rates", "combined local and regional rate must be below 1")
        )
    return errors


def validate_year_configuration(config: YearConfiguration) -> list[str]:
    """Return a list of validation issues for the provided configuration."""

    errors: list[str] = []
    base_amount = config.price_base_amount

    errors.extend(_validate_bands("basic_deduction.bands", config.basic_deduction.bands))
    errors.extend(
        _validate_bands("basic_deduction.senior_bands", config.basic_deduction.senior_bands)
    )
    errors.extend(_validate_bands("job_tax_credit.bands", config.job_tax_credit.bands))
    errors.extend(
        _validate_bands("job_tax_credit.senior_bands", config.job_tax_credit.senior_bands)
    )

    if not errors:
        deduction_step = config.basic_deduction.rounding_step
        credit_step = config.job_tax_credit.income_rounding_step
        for scope, bands, tolerance in (
            ("basic_deduction.bands", config.basic_deduction.bands, deduction_step),
            ("basic_deduction.senior_bands", config.basic_deduction.senior_bands, deduction_step),
            ("job_tax_credit.bands", config.job_tax_credit.bands, credit_step),
            ("job_tax_credit.senior_bands", config.job_tax_credit.senior_bands, credit_step),
        ):
            errors.extend(_validate_continuity(scope, bands, base_amount, tolerance))

    errors.extend(_validate_pension(config.pension_contribution))
    errors.extend(_validate_income_reduction(config.income_reduction))
    errors.extend(_validate_public_service_fee(config.public_service_fee))
    errors.extend(_validate_default_rates(config.default_rates))

    return errors


def validate_all_years(years: Sequence[int] | None = None) -> dict[int, list[str]]:
    """Map each tax year (all configured years by default) to its issues."""

    return {
        int(year): validate_year_configuration(load_year_configuration(year))
        for year in (years or available_years())
    }


def _report_year(year: int) -> bool:
    """Print the outcome for ``year`` and return ``True`` when it is clean."""

    try:
        issues = validate_year_configuration(load_year_configuration(year))
    except (FileNotFoundError, ConfigurationError) as error:
        print(f"[{year}] failed to load configuration: {error}")
        return False

    if not issues:
        print(f"[{year}] OK")
        return True

    print(f"[{year}] {len(issues)} issue(s) detected:")
    for issue in issues:
        print(f"  - {issue}")
    return False


def main(argv: Sequence[str] | None = None) -> int:
    """Check the bundled swetax year tables and return a process exit code."""

    parser = argparse.ArgumentParser(
        prog="swetax-validate-config",
        description=(
            "Check the swetax tax year tables (band ordering, band continuity, "
            "threshold and cap consistency, default rates)."
        ),
    )
    parser.add_argument(
        "years",
        nargs="*",
        type=int,
        help="tax years to check; every year in manifest.yaml when omitted",
    )
    years = parser.parse_args(argv).years or available_years()
    if not years:
        parser.print_help()
        return 1

    results = [_report_year(year) for year in years]
    return 0 if all(results) else 1


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())

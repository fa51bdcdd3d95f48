"""State tax, pension contribution and the small flat-rate charges."""

from __future__ import annotations

from decimal import Decimal

from swetax.backend.config.year_config import (
    IncomeReductionConfig,
    PensionContributionConfig,
    PublicServiceFeeConfig,
    StateTaxConfig,
)

from .utils import ZERO, round_currency, round_down_whole, round_to_step_half_down


def calculate_state_tax(taxable_income: Decimal, config: StateTaxConfig) -> Decimal:
    """Return state tax on the share of ``taxable_income`` above the threshold."""

    if taxable_income <= config.threshold:
        return ZERO
    return round_currency((taxable_income - config.threshold) * config.rate)


def calculate_pension_contribution(
    yearly_income: Decimal,
    config: PensionContributionConfig,
    is_senior: bool = False,
) -> Decimal:
    """Return the general pension contribution charged on gross income.

    The contribution is rounded to the nearest hundred before the absolute
    cap is applied; an amount ending in exactly 50 rounds down.
    """

    if is_senior or yearly_income < config.minimum_income:
        return ZERO

    contribution_base = min(yearly_income, config.income_ceiling)
    contribution = round_to_step_half_down(
        contribution_base * config.rate, config.rounding_step
    )
    return min(contribution, config.maximum)


def calculate_income_reduction(
    taxable_income: Decimal, config: IncomeReductionConfig
) -> Decimal:
    """Return the flat reduction for earned income."""

    if taxable_income <= config.threshold:
        return ZERO
    if taxable_income >= config.ceiling:
        return config.maximum
    return round_down_whole((taxable_income - config.threshold) * config.rate)


def calculate_public_service_fee(
    taxable_income: Decimal, config: PublicServiceFeeConfig
) -> Decimal:
    if taxable_income <= 0:
        return ZERO
    if taxable_income >= config.threshold:
        return config.maximum
    return round_down_whole(taxable_income * config.rate)


__all__ = [
    "calculate_income_reduction",
    "calculate_pension_contribution",
    "calculate_public_service_fee",
    "calculate_state_tax",
]

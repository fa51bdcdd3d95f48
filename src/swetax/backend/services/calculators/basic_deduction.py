"""Basic deduction (grundavdrag) calculator."""

from __future__ import annotations

from decimal import Decimal

from swetax.backend.config.year_config import BasicDeductionConfig

from .utils import ZERO, evaluate_bands, round_up_to_step


def calculate_basic_deduction(
    yearly_income: Decimal,
    config: BasicDeductionConfig,
    price_base_amount: Decimal,
    is_senior: bool = False,
) -> Decimal:
    """Return the yearly basic deduction for ``yearly_income``.

    The standard table is capped at the income itself. Seniors receive the
    enhanced table on top, and the combined amount is rounded up to the next
    ``rounding_step`` (100 kr). The rounded result never exceeds the income.
    """

    if yearly_income <= 0:
        return ZERO

    deduction = evaluate_bands(yearly_income, config.bands, price_base_amount)
    deduction = min(deduction, yearly_income)

    if is_senior:
        deduction += evaluate_bands(yearly_income, config.senior_bands, price_base_amount)

    rounded = round_up_to_step(deduction, config.rounding_step)
    return min(rounded, yearly_income)


__all__ = ["calculate_basic_deduction"]

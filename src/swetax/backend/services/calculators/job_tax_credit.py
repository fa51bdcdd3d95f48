"""Job tax credit (jobbskatteavdrag) calculator."""

from __future__ import annotations

import logging
from decimal import Decimal

from swetax.backend.config.year_config import BasicDeductionConfig, JobTaxCreditConfig

from .basic_deduction import calculate_basic_deduction
from .utils import ZERO, evaluate_bands, round_down_to_step, round_down_whole

_LOGGER = logging.getLogger(__name__)


def adjusted_local_rate(combined_local_rate: Decimal, config: JobTaxCreditConfig) -> Decimal:
    """Strip the burial and church share from the table rate.

    When the subtraction would leave nothing, the unadjusted rate is used.
    """

    adjusted = combined_local_rate - config.table_fee_rate
    if adjusted <= 0:
        _LOGGER.debug(
            "Combined local rate %s does not exceed the table fee rate %s; using it unadjusted",
            combined_local_rate,
            config.table_fee_rate,
        )
        return combined_local_rate
    return adjusted


def calculate_job_tax_credit(
    yearly_income: Decimal,
    combined_local_rate: Decimal,
    config: JobTaxCreditConfig,
    deduction_config: BasicDeductionConfig,
    price_base_amount: Decimal,
    is_senior: bool = False,
) -> Decimal:
    """Return the yearly job tax credit in whole currency units."""

    if yearly_income <= 0:
        return ZERO

    if is_senior:
        credit = evaluate_bands(yearly_income, config.senior_bands, price_base_amount)
        return round_down_whole(credit) if credit > 0 else ZERO

    rate = adjusted_local_rate(combined_local_rate, config)
    income = round_down_to_step(yearly_income, config.income_rounding_step)
    credit_base = evaluate_bands(income, config.bands, price_base_amount)
    credit_base -= calculate_basic_deduction(
        income, deduction_config, price_base_amount, is_senior=False
    )
    if credit_base <= 0:
        return ZERO

    return round_down_whole(credit_base * rate)


__all__ = ["adjusted_local_rate", "calculate_job_tax_credit"]

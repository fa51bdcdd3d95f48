"""Orchestrate input validation and the salary tax calculation.

The calculation service sequences the individual calculators, allocates the
tax reductions between the local and the state tax bucket, and converts the
yearly totals back into the monthly figures the caller asked about. Profiling
hooks and input validation live here so that each calculator can stay a pure
function of its arguments.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from time import perf_counter
from typing import Any

from pydantic import ValidationError

from swetax.backend.config.year_config import (
    YearConfiguration,
    available_years,
    current_year,
    load_year_configuration,
)
from swetax.backend.models import (
    BucketName,
    CalculationRecord,
    InvalidInputError,
    RateSet,
    TaxBreakdown,
    TaxBuckets,
    TaxInput,
    format_validation_error,
)

from .calculators import (
    allocate_reduction,
    calculate_basic_deduction,
    calculate_income_reduction,
    calculate_job_tax_credit,
    calculate_pension_contribution,
    calculate_public_service_fee,
    calculate_state_tax,
    clamp_non_negative,
    round_currency,
    round_down_whole,
    round_rate,
)
from .rate_provider import RateProvider
from .sinks import CalculationSink

_LOGGER = logging.getLogger(__name__)

_PROFILE_ENV = "SWETAX_PROFILE_CALCULATIONS"
_ZERO = Decimal("0")


def _profiling_enabled() -> bool:
    """Return ``True`` when calculation profiling should be captured."""

    flag = os.getenv(_PROFILE_ENV, "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile_section(name: str, store: dict[str, float] | None):
    """Capture the duration of a named section when profiling is enabled."""

    if store is None:
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        store[name] = perf_counter() - start


def _coerce_input(payload: TaxInput | Mapping[str, Any]) -> TaxInput:
    if isinstance(payload, TaxInput):
        tax_input = payload
    else:
        if not isinstance(payload, Mapping):
            raise InvalidInputError("Calculation input must be a mapping")
        if payload.get("gross_monthly_salary") is None:
            raise InvalidInputError("Calculation input must include a gross monthly salary")
        try:
            tax_input = TaxInput.model_validate(payload)
        except ValidationError as exc:
            raise InvalidInputError(format_validation_error(exc)) from exc

    if tax_input.gross_monthly_salary < 0:
        raise InvalidInputError("gross_monthly_salary: value cannot be negative")
    return tax_input


def _coerce_rates(rates: RateSet | Mapping[str, Any]) -> RateSet:
    if isinstance(rates, RateSet):
        return rates
    if not isinstance(rates, Mapping):
        raise InvalidInputError("Rates must be a mapping")
    try:
        return RateSet.model_validate(rates)
    except ValidationError as exc:
        raise InvalidInputError(format_validation_error(exc)) from exc


def _apply_reduction(
    buckets: TaxBuckets, amount: Decimal, order: Sequence[BucketName]
) -> dict[str, Decimal]:
    consumed = allocate_reduction(
        amount, [(name, buckets.capacity(name)) for name in order]
    )
    for name, taken in consumed.items():
        buckets.consume(name, taken)
    return consumed


def _offer_to_sink(sink: CalculationSink | None, breakdown: TaxBreakdown) -> None:
    """Hand a record to ``sink`` without letting its failures escape."""

    if sink is None:
        return
    try:
        sink.record(CalculationRecord.from_breakdown(breakdown))
    except Exception:  # noqa: BLE001 - recording is best effort
        _LOGGER.warning("Failed to record tax calculation", exc_info=True)


def calculate_salary_tax(
    tax_input: TaxInput | Mapping[str, Any],
    rates: RateSet | Mapping[str, Any],
    *,
    year: int | None = None,
    sink: CalculationSink | None = None,
) -> TaxBreakdown:
    """Compute the itemized tax breakdown for a gross monthly salary."""

    tax_input = _coerce_input(tax_input)
    rates = _coerce_rates(rates)

    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter() if timings is not None else None

    tax_year = year if year is not None else current_year()
    config: YearConfiguration = load_year_configuration(tax_year)
    base_amount = config.price_base_amount
    is_senior = tax_input.is_senior

    _LOGGER.debug(
        "Calculating %s tax for locality %s with gross salary %s",
        tax_year,
        tax_input.locality_id,
        tax_input.gross_monthly_salary,
    )

    gross_monthly = tax_input.gross_monthly_salary
    yearly_gross = gross_monthly * config.months_per_year

    with _profile_section("basic_deduction", timings):
        basic_deduction = calculate_basic_deduction(
            yearly_gross, config.basic_deduction, base_amount, is_senior
        )
    taxable_income = clamp_non_negative(yearly_gross - basic_deduction)

    local_tax = round_currency(taxable_income * rates.local_tax_rate)
    regional_tax = round_currency(taxable_income * rates.regional_tax_rate)

    with _profile_section("supplementary", timings):
        state_tax = calculate_state_tax(taxable_income, config.state_tax)
        pension_contribution = calculate_pension_contribution(
            yearly_gross, config.pension_contribution, is_senior
        )
        income_reduction = calculate_income_reduction(
            taxable_income, config.income_reduction
        )
        public_service_fee = calculate_public_service_fee(
            taxable_income, config.public_service_fee
        )

    with _profile_section("job_tax_credit", timings):
        job_tax_credit = calculate_job_tax_credit(
            yearly_gross,
            rates.combined_local_rate,
            config.job_tax_credit,
            config.basic_deduction,
            base_amount,
            is_senior,
        )

    burial_fee = round_down_whole(taxable_income * rates.burial_fee_rate)
    church_fee = (
        round_down_whole(taxable_income * rates.church_fee_rate)
        if tax_input.is_church_member
        else _ZERO
    )

    # Job tax credit and income reduction only ever reduce the local bucket;
    # the pension reduction spills over into state tax.
    buckets = TaxBuckets(local=local_tax + regional_tax, state=state_tax)
    applied_job_credit = _apply_reduction(buckets, job_tax_credit, ("local",))
    applied_income_reduction = _apply_reduction(buckets, income_reduction, ("local",))
    pension_reduction = _apply_reduction(
        buckets, pension_contribution, ("local", "state")
    )

    yearly_total_tax = (
        buckets.local
        + buckets.state
        + burial_fee
        + church_fee
        + pension_contribution
        + public_service_fee
    )
    monthly_total_tax = round_currency(yearly_total_tax / config.months_per_year)
    net_monthly_salary = gross_monthly - monthly_total_tax
    effective_tax_rate = (
        round_rate(yearly_total_tax / yearly_gross) if yearly_gross > 0 else _ZERO
    )

    breakdown = TaxBreakdown(
        year=tax_year,
        locality_id=tax_input.locality_id,
        local_tax_rate=rates.local_tax_rate,
        regional_tax_rate=rates.regional_tax_rate,
        state_tax_rate=config.state_tax.rate,
        burial_fee_rate=rates.burial_fee_rate,
        church_fee_rate=rates.church_fee_rate if tax_input.is_church_member else _ZERO,
        gross_monthly_salary=gross_monthly,
        yearly_gross_income=yearly_gross,
        yearly_basic_deduction=basic_deduction,
        yearly_taxable_income=taxable_income,
        yearly_local_tax=local_tax,
        yearly_regional_tax=regional_tax,
        yearly_state_tax=state_tax,
        yearly_pension_contribution=pension_contribution,
        yearly_job_tax_credit=job_tax_credit,
        yearly_income_reduction=income_reduction,
        yearly_public_service_fee=public_service_fee,
        yearly_burial_fee=burial_fee,
        yearly_church_fee=church_fee,
        applied_job_tax_credit=applied_job_credit["local"],
        applied_income_reduction=applied_income_reduction["local"],
        pension_reduction_local=pension_reduction["local"],
        pension_reduction_state=pension_reduction["state"],
        local_tax_after_reductions=buckets.local,
        state_tax_after_reductions=buckets.state,
        yearly_total_tax=yearly_total_tax,
        monthly_total_tax=monthly_total_tax,
        net_monthly_salary=net_monthly_salary,
        effective_tax_rate=effective_tax_rate,
    )

    if timings is not None and overall_start is not None:
        timings["total"] = perf_counter() - overall_start
        _LOGGER.debug(
            "calculate_salary_tax timings (ms): %s",
            {name: round(duration * 1000, 3) for name, duration in timings.items()},
        )

    _offer_to_sink(sink, breakdown)
    return breakdown


def _resolve_year(effective_date: date) -> int:
    if effective_date.year in available_years():
        return effective_date.year
    return current_year()


def calculate_for_locality(
    tax_input: TaxInput | Mapping[str, Any],
    provider: RateProvider,
    *,
    effective_date: date | None = None,
    year: int | None = None,
    sink: CalculationSink | None = None,
) -> TaxBreakdown:
    """Resolve rates for the input's locality, then run the calculation."""

    tax_input = _coerce_input(tax_input)
    if not tax_input.locality_id:
        raise InvalidInputError("locality_id is required to look up rates")

    on_date = effective_date or date.today()
    rates = provider.get_rates(tax_input.locality_id, on_date)
    tax_year = year if year is not None else _resolve_year(on_date)
    return calculate_salary_tax(tax_input, rates, year=tax_year, sink=sink)


__all__ = ["calculate_for_locality", "calculate_salary_tax"]

"""Unit tests for the salary tax calculation service."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from swetax.backend.models import (
    CalculationRecord,
    InvalidInputError,
    RateSet,
    TaxInput,
    UnknownLocalityError,
)
from swetax.backend.services import (
    RateRecord,
    StaticRateProvider,
    TaxType,
    calculate_for_locality,
    calculate_salary_tax,
)

_SERVICE_LOGGER = "swetax.backend.services.calculation_service"

_MONETARY_FIELDS = (
    "yearly_basic_deduction",
    "yearly_taxable_income",
    "yearly_local_tax",
    "yearly_regional_tax",
    "yearly_state_tax",
    "yearly_pension_contribution",
    "yearly_job_tax_credit",
    "yearly_income_reduction",
    "yearly_public_service_fee",
    "yearly_burial_fee",
    "yearly_church_fee",
    "local_tax_after_reductions",
    "state_tax_after_reductions",
    "yearly_total_tax",
    "monthly_total_tax",
)


class _CollectingSink:
    def __init__(self) -> None:
        self.records: list[CalculationRecord] = []

    def record(self, entry: CalculationRecord) -> None:
        self.records.append(entry)


class _FailingSink:
    def record(self, entry: CalculationRecord) -> None:
        raise RuntimeError("storage offline")


def test_reference_calculation(reference_rates: RateSet) -> None:
    result = calculate_salary_tax(
        TaxInput(gross_monthly_salary=Decimal("37500")), reference_rates, year=2026
    )

    assert result.yearly_gross_income == Decimal("450000")
    assert result.yearly_basic_deduction == Decimal("19000")
    assert result.yearly_taxable_income == Decimal("431000")
    assert result.yearly_local_tax == Decimal("98268")
    assert result.yearly_regional_tax == Decimal("51073.5")
    assert result.yearly_state_tax == Decimal("0")
    assert result.yearly_burial_fee == Decimal("1258")
    assert result.yearly_job_tax_credit == Decimal("51285")
    assert result.yearly_total_tax == Decimal("98998.5")
    assert result.monthly_total_tax == Decimal("8249.88")
    assert result.net_monthly_salary == Decimal("29250.12")
    assert result.effective_tax_rate == Decimal("0.2200")


def test_reductions_are_reported_per_bucket(reference_rates: RateSet) -> None:
    result = calculate_salary_tax({"gross_monthly_salary": 37500}, reference_rates, year=2026)

    assert result.applied_job_tax_credit == Decimal("51285")
    assert result.applied_income_reduction == Decimal("1500")
    assert result.pension_reduction_local == Decimal("31500")
    assert result.pension_reduction_state == Decimal("0")
    assert result.local_tax_after_reductions == Decimal("65056.5")
    assert result.yearly_social_contribution == result.yearly_pension_contribution


def test_mapping_input_matches_model_input(reference_rates: RateSet) -> None:
    from_model = calculate_salary_tax(
        TaxInput(gross_monthly_salary=Decimal("37500")), reference_rates, year=2026
    )
    from_mapping = calculate_salary_tax(
        {"gross_monthly_salary": "37500"},
        {
            "local_tax_rate": 0.228,
            "regional_tax_rate": 0.1185,
            "burial_fee_rate": 0.00292,
            "church_fee_rate": 0,
        },
        year=2026,
    )

    assert from_mapping == from_model


def test_defaults_to_current_year(reference_rates: RateSet) -> None:
    result = calculate_salary_tax({"gross_monthly_salary": 37500}, reference_rates)

    assert result.year == 2026


def test_calculation_uses_requested_year(reference_rates: RateSet) -> None:
    result = calculate_salary_tax({"gross_monthly_salary": 80000}, reference_rates, year=2025)

    assert result.year == 2025
    # 942 700 taxable income against the 613 900 threshold of 2025.
    assert result.yearly_state_tax > Decimal("59920")


def test_unknown_year_is_reported(reference_rates: RateSet) -> None:
    with pytest.raises(FileNotFoundError):
        calculate_salary_tax({"gross_monthly_salary": 37500}, reference_rates, year=1999)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"gross_monthly_salary": None},
        {"gross_monthly_salary": -1},
        {"gross_monthly_salary": "not-a-number"},
        {"gross_monthly_salary": 30000, "unexpected": True},
    ],
)
def test_invalid_input_is_rejected(payload: dict[str, Any], reference_rates: RateSet) -> None:
    with pytest.raises(InvalidInputError):
        calculate_salary_tax(payload, reference_rates)


def test_negative_salary_message_is_readable(reference_rates: RateSet) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        calculate_salary_tax({"gross_monthly_salary": -100}, reference_rates)

    assert "gross_monthly_salary: value cannot be negative" in str(exc_info.value)


def test_non_mapping_input_is_rejected(reference_rates: RateSet) -> None:
    with pytest.raises(InvalidInputError):
        calculate_salary_tax(["37500"], reference_rates)  # type: ignore[arg-type]


def test_invalid_rates_are_rejected() -> None:
    rates = {
        "local_tax_rate": 1.5,
        "regional_tax_rate": 0.1,
        "burial_fee_rate": 0,
        "church_fee_rate": 0,
    }

    with pytest.raises(InvalidInputError):
        calculate_salary_tax({"gross_monthly_salary": 30000}, rates)


def test_zero_salary_yields_zero_components(reference_rates: RateSet) -> None:
    result = calculate_salary_tax({"gross_monthly_salary": 0}, reference_rates)

    for field in _MONETARY_FIELDS:
        assert getattr(result, field) == Decimal("0"), field
    assert result.net_monthly_salary == Decimal("0")
    assert result.effective_tax_rate == Decimal("0")


def test_income_below_deduction_is_untaxed(reference_rates: RateSet) -> None:
    result = calculate_salary_tax({"gross_monthly_salary": 2000}, reference_rates)

    assert result.yearly_taxable_income == Decimal("0")
    assert result.yearly_total_tax == Decimal("0")
    assert result.net_monthly_salary == Decimal("2000")


def test_identical_inputs_give_identical_results(reference_rates: RateSet) -> None:
    payload = {"gross_monthly_salary": "41234.56", "is_church_member": True}

    first = calculate_salary_tax(payload, reference_rates)
    second = calculate_salary_tax(payload, reference_rates)

    assert first == second


@pytest.mark.parametrize("is_senior", [False, True])
def test_components_are_never_negative(reference_rates: RateSet, is_senior: bool) -> None:
    for monthly in range(0, 150001, 2500):
        result = calculate_salary_tax(
            {"gross_monthly_salary": monthly, "is_senior": is_senior},
            reference_rates,
        )

        for field in _MONETARY_FIELDS:
            assert getattr(result, field) >= 0, (monthly, field)
        assert result.net_monthly_salary <= result.gross_monthly_salary
        assert result.net_monthly_salary + result.monthly_total_tax == Decimal(monthly)


def test_church_fee_applies_only_to_members() -> None:
    rates = RateSet(
        local_tax_rate=Decimal("0.228"),
        regional_tax_rate=Decimal("0.1185"),
        burial_fee_rate=Decimal("0.00292"),
        church_fee_rate=Decimal("0.0101"),
    )

    member = calculate_salary_tax(
        {"gross_monthly_salary": 37500, "is_church_member": True}, rates, year=2026
    )
    non_member = calculate_salary_tax({"gross_monthly_salary": 37500}, rates, year=2026)

    assert member.yearly_church_fee == Decimal("4353")
    assert member.church_fee_rate == Decimal("0.0101")
    assert non_member.yearly_church_fee == Decimal("0")
    assert non_member.church_fee_rate == Decimal("0")
    assert member.yearly_total_tax - non_member.yearly_total_tax == Decimal("4353")


def test_pension_reduction_spills_over_into_state_tax() -> None:
    rates = RateSet(
        local_tax_rate=Decimal("0.01"),
        regional_tax_rate=Decimal("0"),
        burial_fee_rate=Decimal("0"),
        church_fee_rate=Decimal("0"),
    )

    result = calculate_salary_tax({"gross_monthly_salary": 80000}, rates, year=2026)

    assert result.yearly_local_tax == Decimal("9426")
    assert result.yearly_job_tax_credit == Decimal("1617")
    assert result.pension_reduction_local == Decimal("6309")
    assert result.pension_reduction_state == Decimal("40791")
    assert result.local_tax_after_reductions == Decimal("0")
    assert result.state_tax_after_reductions == Decimal("19129")
    assert result.yearly_total_tax == Decimal("67413")


def test_sink_receives_calculation_record(reference_rates: RateSet) -> None:
    sink = _CollectingSink()

    result = calculate_salary_tax(
        {"gross_monthly_salary": 37500, "locality_id": "0180"},
        reference_rates,
        year=2026,
        sink=sink,
    )

    assert sink.records == [CalculationRecord.from_breakdown(result)]
    assert sink.records[0].locality_id == "0180"
    assert sink.records[0].monthly_total_tax == Decimal("8249.88")


def test_sink_failure_does_not_break_calculation(
    reference_rates: RateSet, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger=_SERVICE_LOGGER)

    result = calculate_salary_tax(
        {"gross_monthly_salary": 37500}, reference_rates, year=2026, sink=_FailingSink()
    )

    assert result.monthly_total_tax == Decimal("8249.88")
    assert "Failed to record tax calculation" in caplog.text


def test_profiling_logs_section_timings(
    reference_rates: RateSet,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.setenv("SWETAX_PROFILE_CALCULATIONS", "true")
    caplog.set_level(logging.DEBUG, logger=_SERVICE_LOGGER)

    calculate_salary_tax({"gross_monthly_salary": 37500}, reference_rates)

    timing_messages = [
        record.getMessage()
        for record in caplog.records
        if "timings" in record.getMessage()
    ]
    assert timing_messages
    assert "job_tax_credit" in timing_messages[0]
    assert "total" in timing_messages[0]


def test_profiling_is_disabled_by_default(
    reference_rates: RateSet,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    monkeypatch.delenv("SWETAX_PROFILE_CALCULATIONS", raising=False)
    caplog.set_level(logging.DEBUG, logger=_SERVICE_LOGGER)

    calculate_salary_tax({"gross_monthly_salary": 37500}, reference_rates)

    assert not any("timings" in record.getMessage() for record in caplog.records)


def _provider() -> StaticRateProvider:
    valid_from = date(2026, 1, 1)
    return StaticRateProvider(
        [
            RateRecord(
                locality_id="0180",
                tax_type=TaxType.COMMUNAL,
                rate=Decimal("0.228"),
                valid_from=valid_from,
            ),
            RateRecord(
                locality_id="0180",
                tax_type=TaxType.REGIONAL,
                rate=Decimal("0.1185"),
                valid_from=valid_from,
            ),
            RateRecord(
                locality_id="0180",
                tax_type=TaxType.BURIAL,
                rate=Decimal("0.00292"),
                valid_from=valid_from,
            ),
            RateRecord(
                locality_id="0180",
                tax_type=TaxType.CHURCH,
                rate=Decimal("0"),
                valid_from=valid_from,
            ),
        ]
    )


def test_calculate_for_locality_resolves_rates() -> None:
    result = calculate_for_locality(
        {"gross_monthly_salary": 37500, "locality_id": "0180"},
        _provider(),
        effective_date=date(2026, 3, 1),
    )

    assert result.year == 2026
    assert result.locality_id == "0180"
    assert result.local_tax_rate == Decimal("0.228")
    assert result.monthly_total_tax == Decimal("8249.88")


def test_calculate_for_locality_falls_back_to_current_year() -> None:
    result = calculate_for_locality(
        {"gross_monthly_salary": 37500, "locality_id": "0180"},
        _provider(),
        effective_date=date(2031, 3, 1),
    )

    assert result.year == 2026


def test_calculate_for_locality_requires_locality() -> None:
    with pytest.raises(InvalidInputError):
        calculate_for_locality({"gross_monthly_salary": 37500}, _provider())


def test_calculate_for_locality_propagates_unknown_locality() -> None:
    with pytest.raises(UnknownLocalityError):
        calculate_for_locality(
            {"gross_monthly_salary": 37500, "locality_id": "9999"},
            _provider(),
            effective_date=date(2026, 3, 1),
        )


def test_salary_beyond_supported_range_is_rejected(reference_rates: RateSet) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        calculate_salary_tax({"gross_monthly_salary": "1e26"}, reference_rates)

    assert "gross_monthly_salary" in str(exc_info.value)

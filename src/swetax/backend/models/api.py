"""Pydantic models describing the calculation inputs and results."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from swetax.backend.config.schema import coerce_decimal

__all__ = [
    "CalculationRecord",
    "InvalidInputError",
    "MAX_MONTHLY_SALARY",
    "RateSet",
    "TaxBreakdown",
    "TaxInput",
    "UnknownLocalityError",
    "format_validation_error",
]


class InvalidInputError(ValueError):
    """Raised when calculation input is missing or out of range."""


class UnknownLocalityError(LookupError):
    """Raised by rate providers when a locality cannot be resolved."""


# Keeps yearly amounts well inside the default 28-digit decimal context.
MAX_MONTHLY_SALARY = Decimal("1000000000")


class TaxInput(BaseModel):
    """Salary and taxpayer flags for a single calculation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    gross_monthly_salary: Decimal = Field(..., ge=0, le=MAX_MONTHLY_SALARY)
    locality_id: str | None = None
    is_church_member: bool = False
    is_senior: bool = False

    @field_validator("gross_monthly_salary", mode="before")
    @classmethod
    def _coerce_salary(cls, value: Any) -> Any:
        return coerce_decimal(value)


class RateSet(BaseModel):
    """Percentage rates applicable to a locality on a given date.

    Every rate is a fraction, so 32.15 % is ``Decimal("0.3215")``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    local_tax_rate: Decimal = Field(..., ge=0, le=1)
    regional_tax_rate: Decimal = Field(..., ge=0, le=1)
    burial_fee_rate: Decimal = Field(..., ge=0, le=1)
    church_fee_rate: Decimal = Field(..., ge=0, le=1)

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_rates(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @property
    def combined_local_rate(self) -> Decimal:
        return self.local_tax_rate + self.regional_tax_rate


class TaxBreakdown(BaseModel):
    """Itemized result of a salary tax calculation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    year: int
    locality_id: str | None = None

    local_tax_rate: Decimal
    regional_tax_rate: Decimal
    state_tax_rate: Decimal
    burial_fee_rate: Decimal
    church_fee_rate: Decimal

    gross_monthly_salary: Decimal
    yearly_gross_income: Decimal
    yearly_basic_deduction: Decimal
    yearly_taxable_income: Decimal
    yearly_local_tax: Decimal
    yearly_regional_tax: Decimal
    yearly_state_tax: Decimal
    yearly_pension_contribution: Decimal
    yearly_job_tax_credit: Decimal
    yearly_income_reduction: Decimal
    yearly_public_service_fee: Decimal
    yearly_burial_fee: Decimal
    yearly_church_fee: Decimal

    applied_job_tax_credit: Decimal
    applied_income_reduction: Decimal
    pension_reduction_local: Decimal
    pension_reduction_state: Decimal
    local_tax_after_reductions: Decimal
    state_tax_after_reductions: Decimal

    yearly_total_tax: Decimal
    monthly_total_tax: Decimal
    net_monthly_salary: Decimal
    effective_tax_rate: Decimal

    @property
    def yearly_social_contribution(self) -> Decimal:
        """Alias matching the generic name of the pension contribution."""

        return self.yearly_pension_contribution


class CalculationRecord(BaseModel):
    """Summary offered to calculation sinks after each calculation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    locality_id: str | None
    year: int
    gross_monthly_salary: Decimal
    monthly_total_tax: Decimal
    net_monthly_salary: Decimal

    @classmethod
    def from_breakdown(cls, breakdown: TaxBreakdown) -> CalculationRecord:
        return cls(
            locality_id=breakdown.locality_id,
            year=breakdown.year,
            gross_monthly_salary=breakdown.gross_monthly_salary,
            monthly_total_tax=breakdown.monthly_total_tax,
            net_monthly_salary=breakdown.net_monthly_salary,
        )


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid calculation input: {details}"

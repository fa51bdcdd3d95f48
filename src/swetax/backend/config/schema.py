"""Pydantic models describing the tax year configuration schema."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Self


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


def coerce_decimal(value: Any) -> Any:
    """Convert floats through ``str`` so YAML values keep their literal digits."""

    if isinstance(value, float):
        return Decimal(str(value))
    return value


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class LinearBand(ImmutableModel):
    """One segment of a piecewise linear function of yearly income.

    ``upper``, ``constant`` and ``anchor`` are expressed as multiples of the
    price base amount. Inside the band the value is
    ``base * constant + rate * (income - base * anchor)``.
    """

    upper_bound: Decimal | None = Field(default=None, alias="upper")
    constant: Decimal = Decimal("0")
    rate: Decimal = Decimal("0")
    anchor: Decimal = Decimal("0")

    @field_validator("upper_bound", "constant", "rate", "anchor", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> LinearBand:
        if self.upper_bound is not None and self.upper_bound <= 0:
            raise ConfigurationError("Band upper bounds must be positive values")
        if self.anchor < 0:
            raise ConfigurationError("Band anchors must be non-negative")
        return self

    def upper_amount(self, base_amount: Decimal) -> Decimal | None:
        if self.upper_bound is None:
            return None
        return base_amount * self.upper_bound

    def evaluate(self, income: Decimal, base_amount: Decimal) -> Decimal:
        return base_amount * self.constant + self.rate * (income - base_amount * self.anchor)


def validate_band_sequence(bands: Sequence[LinearBand], label: str) -> None:
    """Ensure ``bands`` are strictly ascending and end with an open band."""

    if not bands:
        raise ConfigurationError(f"'{label}' must define at least one band")
    last_upper: Decimal | None = None
    for band in bands[:-1]:
        upper = band.upper_bound
        if upper is None:
            raise ConfigurationError(f"Only the final '{label}' band may be open-ended")
        if last_upper is not None and upper <= last_upper:
            raise ConfigurationError(f"'{label}' bands must be in ascending order")
        last_upper = upper
    final_upper = bands[-1].upper_bound
    if final_upper is not None:
        raise ConfigurationError(f"Final '{label}' band must have an open upper bound")


class BasicDeductionConfig(ImmutableModel):
    """Band tables for the basic deduction (grundavdrag)."""

    bands: Sequence[LinearBand]
    senior_bands: Sequence[LinearBand]
    rounding_step: Decimal = Decimal("100")

    @field_validator("rounding_step", mode="before")
    @classmethod
    def _coerce_step(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_tables(self) -> BasicDeductionConfig:
        validate_band_sequence(self.bands, "basic_deduction.bands")
        validate_band_sequence(self.senior_bands, "basic_deduction.senior_bands")
        if self.rounding_step <= 0:
            raise ConfigurationError("'rounding_step' must be positive")
        return self


class JobTaxCreditConfig(ImmutableModel):
    """Band tables for the job tax credit (jobbskatteavdrag)."""

    bands: Sequence[LinearBand]
    senior_bands: Sequence[LinearBand]
    income_rounding_step: Decimal = Decimal("100")
    table_fee_rate: Decimal = Decimal("0")

    @field_validator("income_rounding_step", "table_fee_rate", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_tables(self) -> JobTaxCreditConfig:
        validate_band_sequence(self.bands, "job_tax_credit.bands")
        validate_band_sequence(self.senior_bands, "job_tax_credit.senior_bands")
        if self.income_rounding_step <= 0:
            raise ConfigurationError("'income_rounding_step' must be positive")
        if not (0 <= self.table_fee_rate < 1):
            raise ConfigurationError("'table_fee_rate' must be between 0 and 1")
        return self


class StateTaxConfig(ImmutableModel):
    """Threshold and rate of the state income tax."""

    threshold: Decimal
    rate: Decimal

    @field_validator("threshold", "rate", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> StateTaxConfig:
        if self.threshold < 0:
            raise ConfigurationError("State tax threshold must be non-negative")
        if not (0 <= self.rate <= 1):
            raise ConfigurationError("State tax rate must be between 0 and 1")
        return self


class PensionContributionConfig(ImmutableModel):
    """General pension contribution (allmän pensionsavgift) parameters."""

    rate: Decimal
    minimum_income: Decimal
    income_ceiling: Decimal
    maximum: Decimal
    rounding_step: Decimal = Decimal("100")

    @field_validator(
        "rate", "minimum_income", "income_ceiling", "maximum", "rounding_step", mode="before"
    )
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> PensionContributionConfig:
        if not (0 <= self.rate <= 1):
            raise ConfigurationError("Pension contribution rate must be between 0 and 1")
        for label in ("minimum_income", "income_ceiling", "maximum"):
            if getattr(self, label) < 0:
                raise ConfigurationError(f"Pension contribution '{label}' must be non-negative")
        if self.rounding_step <= 0:
            raise ConfigurationError("Pension contribution 'rounding_step' must be positive")
        return self


class IncomeReductionConfig(ImmutableModel):
    """Flat reduction for earned income (skattereduktion för förvärvsinkomst)."""

    threshold: Decimal
    rate: Decimal
    ceiling: Decimal
    maximum: Decimal

    @field_validator("threshold", "rate", "ceiling", "maximum", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> IncomeReductionConfig:
        if not (0 <= self.rate <= 1):
            raise ConfigurationError("Income reduction rate must be between 0 and 1")
        if self.ceiling <= self.threshold:
            raise ConfigurationError("Income reduction ceiling must exceed its threshold")
        if self.maximum < 0:
            raise ConfigurationError("Income reduction maximum must be non-negative")
        return self


class PublicServiceFeeConfig(ImmutableModel):
    """Public service fee charged on taxable income."""

    rate: Decimal
    threshold: Decimal
    maximum: Decimal

    @field_validator("rate", "threshold", "maximum", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> PublicServiceFeeConfig:
        if not (0 <= self.rate <= 1):
            raise ConfigurationError("Public service fee rate must be between 0 and 1")
        if self.threshold < 0 or self.maximum < 0:
            raise ConfigurationError("Public service fee amounts must be non-negative")
        return self


class DefaultRates(ImmutableModel):
    """Rates substituted by rate providers when no dated record is valid."""

    local_tax_rate: Decimal
    regional_tax_rate: Decimal
    burial_fee_rate: Decimal
    church_fee_rate: Decimal

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_rates(self) -> DefaultRates:
        for name in type(self).model_fields:
            value = getattr(self, name)
            if not (0 <= value <= 1):
                raise ConfigurationError(f"Default '{name}' must be between 0 and 1")
        return self


class YearConfiguration(ImmutableModel):
    """Structured representation of a tax year configuration."""

    year: int
    meta: dict[str, Any] = Field(default_factory=dict)
    price_base_amount: Decimal
    basic_deduction: BasicDeductionConfig
    job_tax_credit: JobTaxCreditConfig
    state_tax: StateTaxConfig
    pension_contribution: PensionContributionConfig
    income_reduction: IncomeReductionConfig
    public_service_fee: PublicServiceFeeConfig
    default_rates: DefaultRates
    months_per_year: int = 12

    @field_validator("price_base_amount", mode="before")
    @classmethod
    def _coerce_base_amount(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @field_validator("meta", mode="before")
    @classmethod
    def _default_meta(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigurationError("'meta' section must be a mapping if provided")
        return value

    @model_validator(mode="after")
    def _validate_year(self) -> YearConfiguration:
        if self.price_base_amount <= 0:
            raise ConfigurationError("'price_base_amount' must be positive")
        if self.months_per_year <= 0:
            raise ConfigurationError("'months_per_year' must be positive")
        return self


class TaxYearManifestEntry(ImmutableModel):
    """Entry describing a supported tax year in the manifest."""

    year: int
    filename: str | None = None
    status: str = "active"
    notes_url: str | None = None

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.year}.yaml"


class TaxYearManifest(ImmutableModel):
    """Manifest describing the available tax year configuration files."""

    years: Sequence[TaxYearManifestEntry]

    @model_validator(mode="after")
    def _validate_years(self) -> Self:
        seen: set[int] = set()
        for entry in self.years:
            if entry.year in seen:
                raise ConfigurationError(
                    f"Duplicate year {entry.year} declared in the configuration manifest"
                )
            seen.add(entry.year)
        return self

    def get_entry(self, year: int) -> TaxYearManifestEntry:
        for entry in self.years:
            if entry.year == year:
                return entry
        raise KeyError(year)

    @computed_field
    @property
    def supported_years(self) -> tuple[int, ...]:
        return tuple(sorted(entry.year for entry in self.years))

    @computed_field
    @property
    def current_year(self) -> int:
        active = [entry.year for entry in self.years if entry.status == "active"]
        if not active:
            raise ConfigurationError("The configuration manifest declares no active year")
        return max(active)


__all__ = [
    "BasicDeductionConfig",
    "ConfigurationError",
    "DefaultRates",
    "ImmutableModel",
    "IncomeReductionConfig",
    "JobTaxCreditConfig",
    "LinearBand",
    "PensionContributionConfig",
    "PublicServiceFeeConfig",
    "StateTaxConfig",
    "TaxYearManifest",
    "TaxYearManifestEntry",
    "ValidationError",
    "YearConfiguration",
    "coerce_decimal",
    "validate_band_sequence",
]

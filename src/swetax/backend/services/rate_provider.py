"""Rate lookup collaborators feeding the calculation service."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from swetax.backend.config.schema import coerce_decimal
from swetax.backend.config.year_config import (
    DefaultRates,
    available_years,
    current_year,
    load_year_configuration,
)
from swetax.backend.models import RateSet, UnknownLocalityError

_LOGGER = logging.getLogger(__name__)


class TaxType(str, Enum):
    """Kinds of rate a locality can publish."""

    COMMUNAL = "COMMUNAL"
    REGIONAL = "REGIONAL"
    BURIAL = "BURIAL"
    CHURCH = "CHURCH"


_RATE_FIELDS: dict[TaxType, str] = {
    TaxType.COMMUNAL: "local_tax_rate",
    TaxType.REGIONAL: "regional_tax_rate",
    TaxType.BURIAL: "burial_fee_rate",
    TaxType.CHURCH: "church_fee_rate",
}

# Missing tax rates are worth surfacing; missing fee rates are routine.
_DEFAULT_LOG_LEVELS: dict[TaxType, int] = {
    TaxType.COMMUNAL: logging.INFO,
    TaxType.REGIONAL: logging.INFO,
    TaxType.BURIAL: logging.DEBUG,
    TaxType.CHURCH: logging.DEBUG,
}


@runtime_checkable
class RateProvider(Protocol):
    """Resolves the rates applicable to a locality on a given date."""

    def get_rates(self, locality_id: str, effective_date: date) -> RateSet:
        ...


class RateRecord(BaseModel):
    """A single dated rate published for a locality."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    locality_id: str
    tax_type: TaxType
    rate: Decimal = Field(..., ge=0, le=1)
    valid_from: date
    valid_to: date | None = None

    @field_validator("rate", mode="before")
    @classmethod
    def _coerce_rate(cls, value: Any) -> Any:
        return coerce_decimal(value)

    @model_validator(mode="after")
    def _validate_period(self) -> RateRecord:
        if self.valid_to is not None and self.valid_to < self.valid_from:
            raise ValueError("valid_to cannot precede valid_from")
        return self

    def is_valid_on(self, on_date: date) -> bool:
        if on_date < self.valid_from:
            return False
        return self.valid_to is None or on_date <= self.valid_to


class StaticRateProvider:
    """In-memory provider over a fixed collection of rate records.

    Localities are known when they appear in ``records`` or ``localities``.
    A rate without a record valid on the requested date is replaced by the
    default rate of the matching tax year (or ``defaults`` when given).
    """

    def __init__(
        self,
        records: Iterable[RateRecord | dict[str, Any]] = (),
        *,
        localities: Iterable[str] = (),
        defaults: DefaultRates | None = None,
    ) -> None:
        self._records: tuple[RateRecord, ...] = tuple(
            record if isinstance(record, RateRecord) else RateRecord.model_validate(record)
            for record in records
        )
        self._localities = frozenset(localities) | {
            record.locality_id for record in self._records
        }
        self._defaults = defaults

    @property
    def localities(self) -> frozenset[str]:
        return self._localities

    def _defaults_for(self, on_date: date) -> DefaultRates:
        if self._defaults is not None:
            return self._defaults
        year = on_date.year if on_date.year in available_years() else current_year()
        return load_year_configuration(year).default_rates

    def _find_rate(self, locality_id: str, tax_type: TaxType, on_date: date) -> Decimal | None:
        candidates = [
            record
            for record in self._records
            if record.locality_id == locality_id
            and record.tax_type is tax_type
            and record.is_valid_on(on_date)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda record: record.valid_from).rate

    def get_rates(self, locality_id: str, effective_date: date) -> RateSet:
        if locality_id not in self._localities:
            raise UnknownLocalityError(f"Locality not found: {locality_id}")

        defaults: DefaultRates | None = None
        values: dict[str, Decimal] = {}
        for tax_type, field_name in _RATE_FIELDS.items():
            rate = self._find_rate(locality_id, tax_type, effective_date)
            if rate is None:
                defaults = defaults or self._defaults_for(effective_date)
                rate = getattr(defaults, field_name)
                _LOGGER.log(
                    _DEFAULT_LOG_LEVELS[tax_type],
                    "No %s rate found for locality %s on %s, using default",
                    tax_type.value.lower(),
                    locality_id,
                    effective_date.isoformat(),
                )
            values[field_name] = rate

        return RateSet(**values)


__all__ = ["RateProvider", "RateRecord", "StaticRateProvider", "TaxType"]

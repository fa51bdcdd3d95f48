"""Typed models shared across the calculation services.

Inputs and results are frozen Pydantic models so a calculation can never
mutate what the caller passed in. Intermediate state that the orchestrator
updates step by step lives in lightweight dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, get_args

from .api import (
    CalculationRecord,
    InvalidInputError,
    RateSet,
    TaxBreakdown,
    TaxInput,
    UnknownLocalityError,
    format_validation_error,
)

__all__ = [
    "BucketName",
    "CalculationRecord",
    "InvalidInputError",
    "RateSet",
    "TaxBreakdown",
    "TaxBuckets",
    "TaxInput",
    "UnknownLocalityError",
    "format_validation_error",
]

_ZERO = Decimal("0")

BucketName = Literal["local", "state"]
_BUCKET_NAMES = frozenset(get_args(BucketName))


@dataclass(slots=True)
class TaxBuckets:
    """Remaining value of the taxes that reductions may be applied against."""

    local: Decimal = _ZERO
    state: Decimal = _ZERO

    def capacity(self, name: BucketName) -> Decimal:
        if name not in _BUCKET_NAMES:
            raise ValueError(f"Unknown tax bucket: {name!r}")
        return getattr(self, name)

    def consume(self, name: BucketName, amount: Decimal) -> None:
        remaining = self.capacity(name) - amount
        setattr(self, name, remaining if remaining > 0 else _ZERO)

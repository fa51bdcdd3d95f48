"""Utility helpers for calculator modules."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_CEILING, ROUND_DOWN, ROUND_FLOOR, ROUND_HALF_UP, Decimal

from swetax.backend.config.year_config import LinearBand

ZERO = Decimal("0")
HUNDRED = Decimal("100")
_CURRENCY_PLACES = Decimal("0.01")
_RATE_PLACES = Decimal("0.0001")
_WHOLE = Decimal("1")


def round_currency(value: Decimal) -> Decimal:
    """Round monetary amounts to two decimals, halves away from zero."""

    return value.quantize(_CURRENCY_PLACES, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Round rate values to four decimals."""

    return value.quantize(_RATE_PLACES, rounding=ROUND_HALF_UP)


def round_down_whole(value: Decimal) -> Decimal:
    """Truncate to whole currency units."""

    return value.quantize(_WHOLE, rounding=ROUND_DOWN)


def round_up_to_step(value: Decimal, step: Decimal = HUNDRED) -> Decimal:
    """Round up to the next multiple of ``step``."""

    return (value / step).to_integral_value(rounding=ROUND_CEILING) * step


def round_down_to_step(value: Decimal, step: Decimal = HUNDRED) -> Decimal:
    """Round down to the previous multiple of ``step``."""

    return (value / step).to_integral_value(rounding=ROUND_FLOOR) * step


def round_to_step_half_down(value: Decimal, step: Decimal = HUNDRED) -> Decimal:
    """Round to the nearest multiple of ``step`` where an exact half rounds down.

    With a step of 100 an amount ending in 50 goes to the lower hundred, while
    anything above 50 goes up.
    """

    lower = round_down_to_step(value, step)
    if value - lower > step / 2:
        return lower + step
    return lower


def select_band(amount: Decimal, bands: Sequence[LinearBand], base_amount: Decimal) -> LinearBand:
    """Return the first band whose inclusive upper bound covers ``amount``."""

    for band in bands:
        upper = band.upper_amount(base_amount)
        if upper is None or amount <= upper:
            return band
    return bands[-1]


def evaluate_bands(amount: Decimal, bands: Sequence[LinearBand], base_amount: Decimal) -> Decimal:
    """Evaluate the piecewise linear function described by ``bands``."""

    return select_band(amount, bands, base_amount).evaluate(amount, base_amount)


def clamp_non_negative(value: Decimal) -> Decimal:
    return value if value > 0 else ZERO


__all__ = [
    "HUNDRED",
    "ZERO",
    "clamp_non_negative",
    "evaluate_bands",
    "round_currency",
    "round_down_to_step",
    "round_down_whole",
    "round_rate",
    "round_to_step_half_down",
    "round_up_to_step",
    "select_band",
]

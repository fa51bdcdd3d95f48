"""Sequential allocation of tax reductions across tax buckets."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .utils import ZERO


def allocate_reduction(
    amount: Decimal, buckets: Sequence[tuple[str, Decimal]]
) -> dict[str, Decimal]:
    """Spread ``amount`` over ``buckets`` in order.

    Each bucket absorbs at most its own capacity and whatever is left moves on
    to the next one. The returned mapping holds the amount consumed per bucket
    in the order given; any remainder after the last bucket is dropped.
    """

    remaining = amount if amount > 0 else ZERO
    consumed: dict[str, Decimal] = {}
    for name, capacity in buckets:
        available = capacity if capacity > 0 else ZERO
        taken = min(remaining, available)
        consumed[name] = consumed.get(name, ZERO) + taken
        remaining -= taken
    return consumed


__all__ = ["allocate_reduction"]

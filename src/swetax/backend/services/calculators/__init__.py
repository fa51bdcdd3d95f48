"""Domain-specific calculation helpers."""

from .allocation import allocate_reduction
from .basic_deduction import calculate_basic_deduction
from .job_tax_credit import adjusted_local_rate, calculate_job_tax_credit
from .supplementary import (
    calculate_income_reduction,
    calculate_pension_contribution,
    calculate_public_service_fee,
    calculate_state_tax,
)
from .utils import (
    clamp_non_negative,
    round_currency,
    round_down_whole,
    round_rate,
)

__all__ = [
    "adjusted_local_rate",
    "allocate_reduction",
    "calculate_basic_deduction",
    "calculate_income_reduction",
    "calculate_job_tax_credit",
    "calculate_pension_contribution",
    "calculate_public_service_fee",
    "calculate_state_tax",
    "clamp_non_negative",
    "round_currency",
    "round_down_whole",
    "round_rate",
]

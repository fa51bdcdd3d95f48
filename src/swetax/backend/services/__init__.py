"""Service-layer helpers for the swetax backend."""

from .calculation_service import calculate_for_locality, calculate_salary_tax
from .rate_provider import RateProvider, RateRecord, StaticRateProvider, TaxType
from .sinks import BackgroundCalculationSink, CalculationSink, LoggingCalculationSink

__all__ = [
    "BackgroundCalculationSink",
    "CalculationSink",
    "LoggingCalculationSink",
    "RateProvider",
    "RateRecord",
    "StaticRateProvider",
    "TaxType",
    "calculate_for_locality",
    "calculate_salary_tax",
]

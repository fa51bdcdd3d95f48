"""Best-effort destinations for completed calculation records."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, runtime_checkable

from swetax.backend.models import CalculationRecord

_LOGGER = logging.getLogger(__name__)


@runtime_checkable
class CalculationSink(Protocol):
    """Receives a record for every finished calculation."""

    def record(self, entry: CalculationRecord) -> None:
        ...


class LoggingCalculationSink:
    """Write calculation records to a logger."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = logger or _LOGGER
        self._level = level

    def record(self, entry: CalculationRecord) -> None:
        self._logger.log(
            self._level,
            "Tax calculation for locality %s (%s): gross %s, tax %s, net %s",
            entry.locality_id,
            entry.year,
            entry.gross_monthly_salary,
            entry.monthly_total_tax,
            entry.net_monthly_salary,
        )


class BackgroundCalculationSink:
    """Forward records to ``target`` on a worker thread.

    ``record`` returns immediately. Failures raised by ``target`` are logged
    and never reach the caller.
    """

    def __init__(self, target: CalculationSink, *, max_workers: int = 1) -> None:
        self._target = target
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="swetax-sink"
        )

    def record(self, entry: CalculationRecord) -> None:
        self._executor.submit(self._deliver, entry)

    def _deliver(self, entry: CalculationRecord) -> None:
        try:
            self._target.record(entry)
        except Exception as exc:  # noqa: BLE001 - fire and forget
            _LOGGER.warning("Failed to record tax calculation: %s", exc)

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> BackgroundCalculationSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["BackgroundCalculationSink", "CalculationSink", "LoggingCalculationSink"]

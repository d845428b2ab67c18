"""
Model measurements reported by classifiers and clusterers.

A sub-model either supports measurements (and returns a possibly empty list)
or does not. The two cases are carried by MeasurementReport so the
aggregating learner never needs exception handling for an expected case.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Tuple


@dataclass(frozen=True)
class Measurement:
    name: str
    value: Any


@dataclass(frozen=True)
class MeasurementReport:
    """Result of asking a sub-model for its measurements."""

    supported: bool
    measurements: Tuple[Measurement, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, measurements: Iterable[Measurement]) -> "MeasurementReport":
        return cls(True, tuple(measurements))

    @classmethod
    def unsupported(cls) -> "MeasurementReport":
        return cls(False)


def aggregate_measurements(reports: Iterable[MeasurementReport]) -> List[Measurement]:
    """
    Concatenate measurements from several reports, in order.
    Unsupported reports contribute nothing.
    """
    merged = []
    for report in reports:
        if report.supported:
            merged.extend(report.measurements)
    return merged

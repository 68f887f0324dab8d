from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from archread.domain.sample import Sample
from archread.utils.time import format_time, in_zone, zone_abbreviation

SINGLE_HEADER = (
    "#   No  Time                          Relative Time             Value"
    "      Valid     Severity    Status"
)
MULTI_HEADER = "#   No   Time                        Rel. Time    Values..."
END_MARKER = "# end"
NIL = "nil"

# 1.12345678e+00 is 14 characters; the field allows a couple spare.
VALUE_WIDTH = 16


def format_value(sample: Optional[Sample]) -> str:
    if sample is None or not sample.displayable:
        return f" {NIL:>{VALUE_WIDTH}}"
    return f" {sample.value:{VALUE_WIDTH}.8e}"


class SampleLineFormatter:
    """Row for a single-channel report: index, time, relative time, value, validity."""

    def __init__(self, time_zone: str) -> None:
        self.time_zone = time_zone

    def __call__(self, index: int, sample: Sample, first_time: datetime) -> str:
        when = in_zone(sample.time, self.time_zone)
        relative = (sample.time - first_time).total_seconds()
        return (
            f"{index:6d}  {format_time(when, millis=True)} {zone_abbreviation(when):<5}"
            f" {relative:12.3f} {sample.value:{VALUE_WIDTH}.8e}"
            f"  {str(sample.valid):<8} {sample.severity.label:<12} {sample.status}"
        ).rstrip()


class DatumSetFormatter:
    """Row for a multi-channel report: one value column per channel."""

    def __init__(self, time_zone: str) -> None:
        self.time_zone = time_zone

    def __call__(
        self,
        index: int,
        reference: datetime,
        first_time: datetime,
        samples: Sequence[Optional[Sample]],
    ) -> str:
        when = in_zone(reference, self.time_zone)
        relative = (reference - first_time).total_seconds()
        line = (
            f"{index:6d}   {format_time(when):>20} {zone_abbreviation(when)}"
            f" {relative:12.3f} "
        )
        return line + "".join(format_value(sample) for sample in samples)

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import IntEnum
from typing import Tuple


class Severity(IntEnum):
    """Alarm severity attached to an archived sample.

    The first four are the channel alarm severities; the rest are codes the
    archive itself inserts to describe gaps in the record.
    """

    NO_ALARM = 0
    MINOR = 1
    MAJOR = 2
    INVALID = 3
    EST_REPEAT = 0x0F80
    DISCONNECTED = 0x0F40
    ARCHIVE_OFF = 0x0F20
    ARCHIVE_DISABLED = 0x0F08
    REPEAT = 0x0F10

    @classmethod
    def from_code(cls, code: int) -> "Severity":
        try:
            return cls(int(code))
        except ValueError:
            # Unknown codes from the archive are reported as invalid data.
            return cls.INVALID

    @property
    def label(self) -> str:
        return self.name.title()


@dataclass(frozen=True)
class Sample:
    """One timestamped archive observation."""

    time: datetime
    value: float
    valid: bool = True
    severity: Severity = Severity.NO_ALARM
    status: str = ""

    def __post_init__(self) -> None:
        if self.time.tzinfo is None:
            raise ValueError("time must be timezone-aware")

    @property
    def displayable(self) -> bool:
        """True when the value is meaningful enough to print."""
        return self.valid and self.severity not in (
            Severity.INVALID,
            Severity.DISCONNECTED,
            Severity.ARCHIVE_OFF,
            Severity.ARCHIVE_DISABLED,
        )

    def at(self, time: datetime) -> "Sample":
        return replace(self, time=time)

    def astimezone(self, tz=None) -> "Sample":
        return replace(self, time=self.time.astimezone(tz))

    @classmethod
    def invalid(cls, time: datetime) -> "Sample":
        return cls(time=time, value=0.0, valid=False, severity=Severity.INVALID)


Series = Tuple[Sample, ...]


def is_strictly_increasing(series: Series) -> bool:
    return all(a.time < b.time for a, b in zip(series, series[1:]))


def to_zone(series: Series, time_zone: str) -> Series:
    """Express every sample time in the run's display zone (``utc`` or ``local``)."""
    tz = timezone.utc if time_zone == "utc" else None
    return tuple(sample.astimezone(tz) for sample in series)

from __future__ import annotations

from datetime import datetime

from archread.domain.sample import Series


def trim_trailing(series: Series, end: datetime, *, keep: int = 2) -> Series:
    """Drop trailing samples while the one before last is still at or after ``end``.

    Never reduces the series below ``keep`` samples.
    """
    count = len(series)
    while count > keep and series[count - 2].time >= end:
        count -= 1
    return series[:count]

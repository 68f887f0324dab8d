from __future__ import annotations

from datetime import datetime, timedelta

from archread.domain.sample import Sample, Series


def resample(series: Series, interval: float, end: datetime) -> Series:
    """Place ``series`` on a uniform grid using step-hold.

    - The grid starts at the first sample time and is ``interval`` seconds apart.
    - Grid points run up to and including ``end``.
    - Each point repeats the value, validity and severity of the latest sample
      at or before it, so invalid stretches stay invalid.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    if not series:
        return ()

    origin = series[0].time
    held = series[0]
    upcoming = 1
    grid: list[Sample] = []
    j = 0
    while True:
        at = origin + timedelta(seconds=interval * j)
        if at > end:
            break
        while upcoming < len(series) and series[upcoming].time <= at:
            held = series[upcoming]
            upcoming += 1
        grid.append(held.at(at))
        j += 1
    return tuple(grid)

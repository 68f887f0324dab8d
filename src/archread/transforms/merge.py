from __future__ import annotations

from typing import Iterable

from archread.domain.sample import Sample, Series


def merge_series(existing: Series, incoming: Iterable[Sample]) -> Series:
    """Fold one page into an accumulated series.

    Leading samples of ``incoming`` at or before the last accumulated time are
    overlap from the previous page and are dropped. Inputs are not modified.
    """
    page = tuple(incoming)
    if not existing:
        return page
    last = existing[-1].time
    skip = 0
    while skip < len(page) and page[skip].time <= last:
        skip += 1
    return existing + page[skip:]


class SeriesMerger:
    """Callable wrapper so the merge can be swapped like other transforms."""

    def __call__(self, existing: Series, incoming: Iterable[Sample]) -> Series:
        return self.apply(existing, incoming)

    def apply(self, existing: Series, incoming: Iterable[Sample]) -> Series:
        return merge_series(existing, incoming)

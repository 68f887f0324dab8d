from __future__ import annotations

from datetime import timedelta
from typing import Iterator, Optional, Sequence

from archread.config.run import RunConfig
from archread.domain.channel import Channel
from archread.domain.sample import Sample
from archread.io.formatters import (
    END_MARKER,
    MULTI_HEADER,
    SINGLE_HEADER,
    DatumSetFormatter,
    SampleLineFormatter,
)


class TableRenderer:
    """Render reconciled channels as the aligned text report."""

    def __init__(self, config: RunConfig) -> None:
        self.config = config
        self._single = SampleLineFormatter(config.time_zone)
        self._datum = DatumSetFormatter(config.time_zone)

    def lines(self, channels: Sequence[Channel]) -> Iterator[str]:
        if len(channels) == 1:
            yield from self._single_channel(channels[0])
        elif channels:
            yield from self._multi_channel(channels)
        yield ""
        yield END_MARKER

    def render(self, channels: Sequence[Channel]) -> str:
        return "\n".join(self.lines(channels)) + "\n"

    def _single_channel(self, channel: Channel) -> Iterator[str]:
        series = channel.series
        if not series:
            return
        first_time = series[0].time
        yield ""
        yield SINGLE_HEADER
        for index, sample in enumerate(series):
            yield self._single(index, sample, first_time)

    def _multi_channel(self, channels: Sequence[Channel]) -> Iterator[str]:
        config = self.config
        # Resampled series share one grid, so their lengths normally agree.
        rows = max((len(ch.series) for ch in channels if ch.okay), default=0)

        # Channels are numbered from 1 for the reader.
        for number, channel in enumerate(channels, start=1):
            yield f"# {number:3d} {channel.name}"
        yield ""
        yield MULTI_HEADER

        for j in range(rows):
            samples = [_sample_at(ch, j) for ch in channels]
            yield self._datum(j, self._reference_time(samples[0], j), config.start, samples)

    def _reference_time(self, sample: Optional[Sample], j: int):
        if sample is not None:
            return sample.time
        interval = self.config.fixed_interval or 0.0
        return self.config.start + timedelta(seconds=interval * j)


def _sample_at(channel: Channel, j: int) -> Optional[Sample]:
    if not channel.okay or j >= len(channel.series):
        return None
    return channel.series[j]

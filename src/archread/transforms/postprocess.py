from __future__ import annotations

import logging

from archread.config.run import RunConfig
from archread.domain.channel import Channel
from archread.domain.sample import Sample
from archread.transforms.resample import resample
from archread.transforms.trim import trim_trailing

logger = logging.getLogger(__name__)


class PostProcessor:
    """Finish a channel once all of its pages have been merged.

    With a fixed interval the series is resampled onto a uniform grid ending
    at the run end time. When more than one channel is in the run every
    series first gets an invalid sample at the run start so all grids share
    the same origin. Without a fixed interval trailing samples beyond the
    run end are trimmed.
    """

    def __init__(self, config: RunConfig, channel_count: int) -> None:
        self.config = config
        self.channel_count = channel_count

    def __call__(self, channel: Channel) -> Channel:
        return self.apply(channel)

    def apply(self, channel: Channel) -> Channel:
        config = self.config
        if config.fixed:
            before = len(channel.series)
            working = channel.series
            if self.channel_count > 1:
                working = (Sample.invalid(config.start),) + working
            channel.series = resample(working, config.fixed_interval, config.end)
            logger.info(
                "resampling ... %d points resampled to %d points.",
                before,
                len(channel.series),
            )
        else:
            channel.series = trim_trailing(channel.series, config.end)
        return channel

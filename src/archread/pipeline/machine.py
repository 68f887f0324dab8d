from __future__ import annotations

import logging
from concurrent.futures import CancelledError
from datetime import timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

from archread.config.run import RunConfig, prepare_run
from archread.config.settings import ArchiveSettings
from archread.domain.channel import Channel, ChannelStatus, RetrievalWindow
from archread.domain.sample import to_zone
from archread.errors import ArchiveTimeoutError, ConfigurationError, RadError
from archread.io.writers import write_report
from archread.pipeline.observability import Observer, RetrievalEvent
from archread.pipeline.states import State
from archread.sources.archive import ArchiveClient, PageResponse, PendingPage, completed
from archread.transforms.merge import SeriesMerger
from archread.transforms.postprocess import PostProcessor
from archread.utils.time import describe_time, ticks_for

logger = logging.getLogger(__name__)

ReportWriter = Callable[[Sequence[Channel], RunConfig], Path]


class RetrievalStateMachine:
    """Tick-driven retrieval of every channel's history.

    Each call to :meth:`step` performs at most one transition and never
    blocks: waits are counted down in ticks and in-flight pages are polled.
    Fatal conditions move the machine to ``ERROR_EXIT`` and are kept on
    :attr:`error` for the host to report.
    """

    def __init__(
        self,
        config: RunConfig,
        channel_names: Sequence[str],
        client: ArchiveClient,
        *,
        settings: Optional[ArchiveSettings] = None,
        observer: Optional[Observer] = None,
        merger: Optional[SeriesMerger] = None,
        writer: ReportWriter = write_report,
    ) -> None:
        self.config = config
        self.channel_names = list(channel_names)
        self.client = client
        self.settings = settings or ArchiveSettings()
        self.observer = observer
        self.merger = merger or SeriesMerger()
        self.writer = writer

        self.state = State.SETUP
        self.channels: list[Channel] = []
        self.index = 0
        self.window: Optional[RetrievalWindow] = None
        self.error: Optional[RadError] = None
        self.output_path: Optional[Path] = None
        self.ticks = 0

        self._postprocessor: Optional[PostProcessor] = None
        self._pending: Optional[PendingPage] = None
        self._timeout = 0
        self._timeout_total = 0

        self._handlers = {
            State.SETUP: self._setup,
            State.INITIAL_DELAY: self._initial_delay,
            State.AWAIT_READY: self._await_ready,
            State.BEGIN_CHANNEL: self._begin_channel,
            State.SEND_PAGE: self._send_page,
            State.AWAIT_PAGE: self._await_page,
            State.FINALIZE: self._finalize,
        }

    @property
    def done(self) -> bool:
        return self.state.terminal

    @property
    def current(self) -> Channel:
        return self.channels[self.index]

    def step(self) -> State:
        """Advance by one tick and return the resulting state."""
        if self.state.terminal:
            return self.state
        self.ticks += 1
        try:
            self.state = self._handlers[self.state]()
        except RadError as exc:
            self.error = exc
            self.state = State.ERROR_EXIT
        return self.state

    def _emit(self, type: str, **payload: object) -> None:
        if self.observer is not None:
            self.observer(RetrievalEvent(type=type, payload=payload))

    def _arm_timeout(self, seconds: float) -> None:
        self._timeout = ticks_for(seconds, self.settings.tick_ms)
        self._timeout_total = self._timeout

    def _still_waiting(self) -> bool:
        """True when the countdown has reached one of its progress milestones."""
        total = self._timeout_total
        return total >= 3 and self._timeout in {total // 3, (2 * total) // 3}

    # -- states -------------------------------------------------------------

    def _setup(self) -> State:
        if not self.channel_names:
            raise ConfigurationError("missing pv name")
        self.config, self.channels = prepare_run(self.config, self.channel_names)
        self._postprocessor = PostProcessor(self.config, len(self.channels))
        logger.info("start time: %s", describe_time(self.config.start))
        logger.info("end time:   %s", describe_time(self.config.end))
        logger.info("archives: %s", self.client.describe())
        self._arm_timeout(self.settings.settle_delay_s)
        return State.INITIAL_DELAY

    def _initial_delay(self) -> State:
        self._timeout -= 1
        self._emit("settle_tick", remaining=self._timeout, total=self._timeout_total)
        if self._timeout > 0:
            return State.INITIAL_DELAY
        self._arm_timeout(self.settings.ready_timeout_s)
        return State.AWAIT_READY

    def _await_ready(self) -> State:
        if self.client.is_ready():
            logger.info("Archiver interface initialised")
            self._emit("archive_ready", archive=self.client.describe())
            return State.BEGIN_CHANNEL
        self._timeout -= 1
        if self._timeout <= 0:
            raise ArchiveTimeoutError("Archiver interface initialise timeout", phase="ready")
        if self._still_waiting():
            logger.warning("Still awaiting archiver interface initialisation")
            self._emit("archive_waiting", remaining=self._timeout, total=self._timeout_total)
        return State.AWAIT_READY

    def _begin_channel(self) -> State:
        pending = [i for i, ch in enumerate(self.channels) if ch.status is ChannelStatus.PENDING]
        if not pending:
            return State.FINALIZE
        self.index = pending[0]
        self.window = RetrievalWindow(start=self.config.start, end=self.config.end)
        return State.SEND_PAGE

    def _send_page(self) -> State:
        channel = self.current
        start, end = self.window.request_bounds()
        try:
            self._pending = self.client.request_page(
                channel.name,
                start.astimezone(timezone.utc),
                end.astimezone(timezone.utc),
                self.settings.max_points,
                self.config.sampling,
            )
        except Exception as exc:
            self._pending = completed(PageResponse(success=False, diagnostic=str(exc)))
        logger.info(
            "Archiver request issued:    %s (%s to %s)",
            channel.name,
            describe_time(start),
            describe_time(end),
        )
        self._emit("page_requested", channel=channel.name, index=self.index, start=start, end=end)
        self._arm_timeout(self.settings.page_timeout_s)
        return State.AWAIT_PAGE

    def _await_page(self) -> State:
        if self._pending is not None and self._pending.done():
            response = _collect(self._pending)
            self._pending = None
            return self._on_page(response)
        self._timeout -= 1
        if self._timeout <= 0:
            raise ArchiveTimeoutError("archive read timeout", phase="page")
        if self._still_waiting():
            logger.warning("Still awaiting archiver response")
        return State.AWAIT_PAGE

    def _on_page(self, response: PageResponse) -> State:
        channel = self.current
        window = self.window
        channel.page_count += 1
        samples = to_zone(response.samples, self.config.time_zone)

        span = ""
        if samples:
            span = f" ({describe_time(samples[0].time)} to {describe_time(samples[-1].time)})"
        logger.info(
            "Archiver response received: %s status: %s, number of points: %d%s",
            channel.name,
            "okay" if response.success else "failed",
            len(samples),
            span,
        )
        if response.diagnostic:
            logger.debug("%s", response.diagnostic)
        self._emit(
            "page_received",
            channel=channel.name,
            page=channel.page_count,
            success=response.success,
            count=len(samples),
            cursor=window.cursor,
        )

        if response.success and samples:
            channel.status = ChannelStatus.OKAY
            channel.series = self.merger(channel.series, samples)
            last = channel.series[-1].time
            if self.config.raw and last < window.end:
                if last > window.cursor:
                    logger.info("requesting more data ... ")
                    window.advance(last)
                    return State.SEND_PAGE
                logger.warning(
                    "%s: no progress past %s; completing channel",
                    channel.name,
                    describe_time(window.cursor),
                )
        else:
            channel.failed_pages += 1

        return self._complete_channel(channel)

    def _complete_channel(self, channel: Channel) -> State:
        if channel.status is not ChannelStatus.OKAY:
            channel.status = ChannelStatus.FAILED
        before = len(channel.series)
        self._postprocessor.apply(channel)
        if self.config.fixed:
            self._emit(
                "resampled",
                channel=channel.name,
                before=before,
                after=len(channel.series),
                interval=self.config.fixed_interval,
            )
        self._emit(
            "channel_complete",
            channel=channel.name,
            index=self.index,
            status=channel.status.value,
            count=len(channel.series),
        )
        return State.BEGIN_CHANNEL

    def _finalize(self) -> State:
        self.output_path = self.writer(self.channels, self.config)
        self._emit("output_written", path=str(self.output_path))
        return State.DONE


def _collect(pending: PendingPage) -> PageResponse:
    """Result of a finished page; a page that raised is reported as failed."""
    try:
        return pending.result()
    except CancelledError:
        return PageResponse(success=False, diagnostic="request cancelled")
    except Exception as exc:
        # Any client failure while producing a page fails that page only.
        logger.debug("Page request raised %r", exc)
        return PageResponse(success=False, diagnostic=f"{type(exc).__name__}: {exc}")

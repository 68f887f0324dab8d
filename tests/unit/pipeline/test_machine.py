from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import timezone

import pytest

from archread.domain.channel import ChannelStatus
from archread.domain.sample import is_strictly_increasing
from archread.errors import ArchiveTimeoutError, ConfigurationError, OutputError
from archread.pipeline.machine import RetrievalStateMachine
from archread.pipeline.states import State
from archread.sources.archive import PageResponse
from tests.unit.helpers import (
    CapturingWriter,
    ScriptedArchiveClient,
    T0,
    at,
    drive,
    fast_settings,
    make_config,
    page,
)


def make_machine(config, names, client, **kwargs):
    kwargs.setdefault("settings", fast_settings())
    kwargs.setdefault("writer", CapturingWriter())
    return RetrievalStateMachine(config, names, client, **kwargs)


def test_states_progress_one_transition_per_tick():
    client = ScriptedArchiveClient({"A": [page(0, 5, 10)]})
    machine = make_machine(make_config(), ["A"], client)
    seen = [machine.state]
    while not machine.done:
        seen.append(machine.step())
    assert seen == [
        State.SETUP,
        State.INITIAL_DELAY,
        State.AWAIT_READY,
        State.BEGIN_CHANNEL,
        State.SEND_PAGE,
        State.AWAIT_PAGE,
        State.BEGIN_CHANNEL,
        State.FINALIZE,
        State.DONE,
    ]
    assert machine.step() is State.DONE


def test_raw_mode_follows_pages_until_window_is_covered():
    client = ScriptedArchiveClient({"A": [page(0, 3), page(5, 7), page(10)]})
    writer = CapturingWriter()
    machine = make_machine(make_config(sampling="raw"), ["A"], client, writer=writer)
    drive(machine)

    channel = machine.channels[0]
    assert machine.state is State.DONE
    assert channel.status is ChannelStatus.OKAY
    assert channel.page_count == 3
    assert [s.time for s in channel.series] == [at(0), at(3), at(5), at(7), at(10)]
    assert is_strictly_increasing(channel.series)
    # Each follow-up request starts where the merged series ended.
    assert [req[1] for req in client.requests] == [T0, at(3), at(7)]
    assert writer.calls == [(["A"], machine.config)]


def test_overlapping_pages_are_deduplicated():
    client = ScriptedArchiveClient({"A": [page(0, 2, 4, 6), page(4, 6, 8, 10)]})
    machine = make_machine(make_config(sampling="raw"), ["A"], client)
    drive(machine)
    series = machine.channels[0].series
    assert len(series) == 4 + 4 - 2
    assert [s.time for s in series] == [at(t) for t in (0, 2, 4, 6, 8, 10)]


def test_linear_mode_uses_a_single_page():
    client = ScriptedArchiveClient({"A": [page(0, 3), page(5, 7)]})
    machine = make_machine(make_config(), ["A"], client)
    drive(machine)
    assert len(client.requests) == 1
    assert client.requests[0][4] == "linear"
    assert client.requests[0][3] == 20000


def test_requests_are_padded_and_sent_in_utc():
    client = ScriptedArchiveClient({"A": [page(0, 10)]})
    config = make_config(time_zone="local", end=at(1000))
    machine = make_machine(config, ["A"], client)
    drive(machine)
    _, start, end, _, _ = client.requests[0]
    assert start.tzinfo is timezone.utc
    assert start == T0
    assert end == at(1050)


def test_stalled_channel_is_completed_instead_of_looping(caplog):
    client = ScriptedArchiveClient(responder=lambda name, start, end: page(0, 1))
    machine = make_machine(make_config(sampling="raw"), ["A"], client)
    drive(machine)
    # Second page makes no progress past the cursor at t=1.
    assert len(client.requests) == 2
    assert machine.channels[0].status is ChannelStatus.OKAY
    assert "no progress" in caplog.text


def test_pagination_terminates_for_any_forward_moving_archive():
    def responder(name, start, end):
        offset = (start - T0).total_seconds()
        return page(offset + 0.5, offset + 1.0)

    client = ScriptedArchiveClient(responder=responder)
    machine = make_machine(make_config(sampling="raw", end=at(30)), ["A"], client)
    drive(machine)
    assert machine.state is State.DONE
    assert len(client.requests) == 30
    assert machine.channels[0].series[-1].time == at(30)


def test_failed_channel_does_not_stop_the_run():
    client = ScriptedArchiveClient(
        {
            "A": [page(0, 5, 10)],
            "B": [PageResponse(success=False, diagnostic="no such pv")],
        }
    )
    machine = make_machine(make_config(), ["A", "B"], client)
    drive(machine)
    a, b = machine.channels
    assert machine.state is State.DONE
    assert a.status is ChannelStatus.OKAY
    assert b.status is ChannelStatus.FAILED
    assert b.failed_pages == 1
    assert machine.config.fixed_interval == 1.0
    assert len(a.series) == len(b.series) == 11


def test_empty_page_fails_the_channel():
    client = ScriptedArchiveClient({"A": [PageResponse(success=True)]})
    machine = make_machine(make_config(), ["A"], client)
    drive(machine)
    assert machine.channels[0].status is ChannelStatus.FAILED
    assert machine.channels[0].series == ()
    assert machine.state is State.DONE


def test_client_exception_is_reported_as_failed_page():
    class Broken(ScriptedArchiveClient):
        def request_page(self, *args):
            raise OSError("connection refused")

    machine = make_machine(make_config(), ["A"], Broken())
    drive(machine)
    assert machine.channels[0].status is ChannelStatus.FAILED
    assert machine.state is State.DONE


@pytest.mark.parametrize("error", [TypeError("nanos is None"), AttributeError("str has no get"), KeyError("secs")])
def test_page_that_raises_while_decoding_fails_only_that_channel(error):
    class Malformed(ScriptedArchiveClient):
        def request_page(self, channel, start, end, max_points, mode):
            self.requests.append((channel, start, end, max_points, mode))
            if channel == "A":
                future = Future()
                future.set_exception(error)
                return future
            return super().request_page(channel, start, end, max_points, mode)

    client = Malformed({"B": [page(0, 5, 10)]})
    machine = make_machine(make_config(), ["A", "B"], client)
    drive(machine)
    a, b = machine.channels
    assert machine.state is State.DONE
    assert machine.error is None
    assert a.status is ChannelStatus.FAILED
    assert a.failed_pages == 1
    assert b.status is ChannelStatus.OKAY


def test_readiness_timeout_is_fatal(caplog):
    client = ScriptedArchiveClient(ready_after=10_000)
    machine = make_machine(make_config(), ["A"], client, settings=fast_settings(ready_timeout_s=0.9))
    drive(machine)
    assert machine.state is State.ERROR_EXIT
    assert isinstance(machine.error, ArchiveTimeoutError)
    assert machine.error.phase == "ready"
    assert client.requests == []
    assert "Still awaiting archiver interface initialisation" in caplog.text


def test_slow_readiness_is_tolerated():
    client = ScriptedArchiveClient({"A": [page(0, 10)]}, ready_after=5)
    machine = make_machine(make_config(), ["A"], client)
    drive(machine)
    assert machine.state is State.DONE
    assert client.ready_checks == 6


def test_page_timeout_is_fatal(caplog):
    client = ScriptedArchiveClient(hang=True)
    machine = make_machine(make_config(), ["A"], client)
    drive(machine)
    assert machine.state is State.ERROR_EXIT
    assert isinstance(machine.error, ArchiveTimeoutError)
    assert machine.error.phase == "page"
    # Ten ticks of page timeout warn at ticks remaining 6 and 3.
    warnings = [r for r in caplog.records if r.getMessage() == "Still awaiting archiver response"]
    assert len(warnings) == 2
    assert all(r.levelno == logging.WARNING for r in warnings)


def test_setup_errors_end_the_run_before_any_request():
    client = ScriptedArchiveClient()
    machine = make_machine(make_config(), [f"PV{i}" for i in range(21)], client)
    assert machine.step() is State.ERROR_EXIT
    assert isinstance(machine.error, ConfigurationError)
    assert client.ready_checks == 0


def test_output_errors_are_fatal():
    def failing_writer(channels, config):
        raise OutputError("open file failed")

    client = ScriptedArchiveClient({"A": [page(0, 10)]})
    machine = make_machine(make_config(), ["A"], client, writer=failing_writer)
    drive(machine)
    assert machine.state is State.ERROR_EXIT
    assert isinstance(machine.error, OutputError)


def test_events_are_published_to_the_observer():
    events = []
    client = ScriptedArchiveClient({"A": [page(0, 10)]})
    machine = make_machine(make_config(), ["A"], client, observer=events.append)
    drive(machine)
    types = [event.type for event in events]
    assert types[0] == "settle_tick"
    assert types[-4:] == ["page_requested", "page_received", "channel_complete", "output_written"]
    assert "resampled" not in types
    received = events[-3]
    assert received.payload["count"] == 2
    assert received.payload["success"] is True


def test_resampling_is_published_with_point_counts():
    events = []
    client = ScriptedArchiveClient({"A": [page(0, 10)]})
    config = make_config(fixed_interval=2.5)
    machine = make_machine(config, ["A"], client, observer=events.append)
    drive(machine)
    types = [event.type for event in events]
    assert types[-5:] == [
        "page_requested",
        "page_received",
        "resampled",
        "channel_complete",
        "output_written",
    ]
    resampled = events[-3].payload
    assert resampled == {"channel": "A", "before": 2, "after": 5, "interval": 2.5}


@pytest.mark.parametrize("time_zone", ["utc", "local"])
def test_samples_are_expressed_in_the_run_zone(time_zone):
    client = ScriptedArchiveClient({"A": [page(0, 10)]})
    machine = make_machine(make_config(time_zone=time_zone), ["A"], client)
    drive(machine)
    sample = machine.channels[0].series[0]
    assert sample.time == T0
    if time_zone == "utc":
        assert sample.time.utcoffset().total_seconds() == 0

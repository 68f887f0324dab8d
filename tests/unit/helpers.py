from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from archread.config.run import RunConfig
from archread.config.settings import ArchiveSettings
from archread.domain.sample import Sample, Series, Severity
from archread.sources.archive import ArchiveClient, PageResponse, completed

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def make_sample(
    second: float,
    value: float | None = None,
    *,
    valid: bool = True,
    severity: Severity = Severity.NO_ALARM,
) -> Sample:
    return Sample(
        time=at(second),
        value=float(second) if value is None else value,
        valid=valid,
        severity=severity,
    )


def make_series(*seconds: float) -> Series:
    return tuple(make_sample(s) for s in seconds)


def page(*seconds: float) -> PageResponse:
    return PageResponse(success=True, samples=make_series(*seconds))


def make_config(**overrides) -> RunConfig:
    values = {
        "time_zone": "utc",
        "sampling": "linear",
        "fixed_interval": None,
        "output_path": Path("report.txt"),
        "start": T0,
        "end": at(10),
    }
    values.update(overrides)
    return RunConfig(**values)


def fast_settings(**overrides) -> ArchiveSettings:
    values = {
        "settle_delay_s": 0.1,
        "ready_timeout_s": 1.0,
        "page_timeout_s": 1.0,
        "tick_ms": 100,
    }
    values.update(overrides)
    return ArchiveSettings(**values)


class NeverDone:
    def done(self) -> bool:
        return False

    def result(self, timeout=None):
        raise AssertionError("page never completes")


class ScriptedArchiveClient(ArchiveClient):
    """Archive stand-in answering from per-channel page queues or a responder."""

    def __init__(
        self,
        pages: Optional[dict[str, list[PageResponse]]] = None,
        *,
        responder: Optional[Callable[[str, datetime, datetime], PageResponse]] = None,
        ready_after: int = 0,
        hang: bool = False,
    ) -> None:
        self.pages = {name: list(queue) for name, queue in (pages or {}).items()}
        self.responder = responder
        self.ready_after = ready_after
        self.hang = hang
        self.ready_checks = 0
        self.requests: list[tuple] = []
        self.closed = False

    @classmethod
    def from_settings(cls, settings: ArchiveSettings) -> "ScriptedArchiveClient":
        return cls(responder=lambda name, start, end: page(0, 2.5, 5, 7.5, 10))

    def is_ready(self) -> bool:
        self.ready_checks += 1
        return self.ready_checks > self.ready_after

    def request_page(self, channel, start, end, max_points, mode):
        self.requests.append((channel, start, end, max_points, mode))
        if self.hang:
            return NeverDone()
        if self.responder is not None:
            return completed(self.responder(channel, start, end))
        queue = self.pages.get(channel, [])
        response = queue.pop(0) if queue else PageResponse(success=True)
        return completed(response)

    def close(self) -> None:
        self.closed = True


def drive(machine, limit: int = 10_000):
    for _ in range(limit):
        if machine.done:
            return machine
        machine.step()
    raise AssertionError(f"machine still in {machine.state} after {limit} ticks")


class CapturingWriter:
    def __init__(self) -> None:
        self.calls = []

    def __call__(self, channels, config):
        self.calls.append(([ch.name for ch in channels], config))
        return Path(config.output_path)

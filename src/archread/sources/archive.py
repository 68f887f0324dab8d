from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, Tuple, runtime_checkable

from archread.domain.sample import Sample


@dataclass(frozen=True)
class PageResponse:
    """One page returned by the archive for a sub-range of the window."""

    success: bool
    samples: Tuple[Sample, ...] = field(default_factory=tuple)
    diagnostic: str = ""

    def __len__(self) -> int:
        return len(self.samples)


@runtime_checkable
class PendingPage(Protocol):
    """Handle for a page that may still be in flight (a Future satisfies it)."""

    def done(self) -> bool:
        ...

    def result(self, timeout: float | None = None) -> PageResponse:
        ...


class ArchiveClient(ABC):
    """Archive service collaborator driven by the retrieval state machine."""

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    def request_page(
        self,
        channel: str,
        start: datetime,
        end: datetime,
        max_points: int,
        mode: str,
    ) -> PendingPage:
        pass

    def describe(self) -> str:
        return type(self).__name__

    def close(self) -> None:
        pass


def completed(response: PageResponse) -> Future:
    """Wrap an already available response as a finished PendingPage."""
    future: Future = Future()
    future.set_result(response)
    return future

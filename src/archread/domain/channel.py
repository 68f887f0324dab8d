from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .sample import Series


class ChannelStatus(str, Enum):
    PENDING = "pending"
    OKAY = "okay"
    FAILED = "failed"


@dataclass
class Channel:
    """A named archive channel and the series accumulated for it."""

    name: str
    status: ChannelStatus = ChannelStatus.PENDING
    page_count: int = 0
    failed_pages: int = 0
    series: Series = field(default_factory=tuple)

    @property
    def okay(self) -> bool:
        return self.status is ChannelStatus.OKAY

    def __len__(self) -> int:
        return len(self.series)


@dataclass
class RetrievalWindow:
    """Tracks how much of ``[start, end]`` has been retrieved for one channel."""

    start: datetime
    end: datetime
    cursor: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.cursor is None:
            self.cursor = self.start

    def advance(self, time: datetime) -> None:
        if time < self.cursor:
            raise ValueError("cursor may not move backwards")
        self.cursor = time

    def request_bounds(self, *, padding: float = 1.05, minimum_s: float = 60.0) -> tuple[datetime, datetime]:
        """Return the ``(start, end)`` of the next page request.

        The end is padded by 5% of the remaining span and is never less than
        ``minimum_s`` seconds after the cursor.
        """
        remaining = (self.end - self.cursor).total_seconds()
        span = max(remaining * padding, minimum_s)
        return self.cursor, self.cursor + timedelta(seconds=int(span))

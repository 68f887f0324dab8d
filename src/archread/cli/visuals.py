from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from archread.pipeline.observability import Observer, RetrievalEvent

logger = logging.getLogger(__name__)


class VisualsBackend:
    """Plain logging only; also the base for progress-rendering backends."""

    name = "off"

    def observer(self) -> Optional[Observer]:
        return None

    @contextmanager
    def session(self) -> Iterator[None]:
        yield


class TqdmBackend(VisualsBackend):
    name = "tqdm"

    def __init__(self) -> None:
        self._settle: Optional[tqdm] = None
        self._pages: Optional[tqdm] = None

    def observer(self) -> Optional[Observer]:
        return self._on_event

    def _on_event(self, event: RetrievalEvent) -> None:
        payload = event.payload
        if event.type == "settle_tick":
            if self._settle is None:
                self._settle = tqdm(total=payload["total"], desc="settling", unit="tick", leave=False)
            self._settle.update(1)
            if payload["remaining"] <= 0:
                self._settle.close()
                self._settle = None
        elif event.type == "page_requested":
            if self._pages is None:
                self._pages = tqdm(desc=str(payload["channel"]), unit="page", leave=False)
        elif event.type == "page_received" and self._pages is not None:
            self._pages.update(1)
            self._pages.set_postfix(points=payload["count"])
        elif event.type == "channel_complete" and self._pages is not None:
            self._pages.close()
            self._pages = None

    @contextmanager
    def session(self) -> Iterator[None]:
        try:
            with logging_redirect_tqdm():
                yield
        finally:
            for bar in (self._settle, self._pages):
                if bar is not None:
                    bar.close()


class RichBackend(VisualsBackend):
    name = "rich"

    def __init__(self, console: Optional[Console] = None) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console or Console(stderr=True),
            transient=True,
        )
        self._settle: Optional[TaskID] = None
        self._channels: dict[str, TaskID] = {}
        self._pages: dict[str, int] = {}

    def observer(self) -> Optional[Observer]:
        return self._on_event

    def _on_event(self, event: RetrievalEvent) -> None:
        payload = event.payload
        if event.type == "settle_tick":
            if self._settle is None:
                self._settle = self.progress.add_task("settling", total=payload["total"])
            self.progress.advance(self._settle)
        elif event.type == "page_requested":
            name = str(payload["channel"])
            if name not in self._channels:
                self._channels[name] = self.progress.add_task(f"{name} pages", total=None)
        elif event.type == "page_received":
            name = str(payload["channel"])
            task = self._channels.get(name)
            if task is not None:
                self._pages[name] = self._pages.get(name, 0) + 1
                self.progress.advance(task)
        elif event.type == "channel_complete":
            name = str(payload["channel"])
            task = self._channels.get(name)
            if task is not None:
                self.progress.update(task, total=self._pages.get(name, 0))

    @contextmanager
    def session(self) -> Iterator[None]:
        # Route log records through the progress console so bars stay intact.
        root = logging.getLogger()
        saved = list(root.handlers)
        handler = RichHandler(
            console=self.progress.console,
            show_time=False,
            show_path=False,
            markup=False,
        )
        root.handlers = [handler]
        try:
            with self.progress:
                yield
        finally:
            root.handlers = saved


def get_visuals_backend(name: Optional[str]) -> VisualsBackend:
    """Pick a backend: auto uses rich on an interactive terminal."""
    choice = (name or "auto").lower()
    if choice == "auto":
        choice = "rich" if sys.stderr.isatty() else "off"
    if choice == "rich":
        return RichBackend()
    if choice == "tqdm":
        return TqdmBackend()
    if choice != "off":
        logger.warning("Unknown visuals backend %r; progress display disabled", name)
    return VisualsBackend()

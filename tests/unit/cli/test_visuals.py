from __future__ import annotations

import io
import logging

from rich.console import Console

from archread.cli.visuals import RichBackend, TqdmBackend, VisualsBackend, get_visuals_backend
from archread.pipeline.observability import RetrievalEvent


def _events():
    return [
        RetrievalEvent("settle_tick", {"remaining": 1, "total": 2}),
        RetrievalEvent("settle_tick", {"remaining": 0, "total": 2}),
        RetrievalEvent("page_requested", {"channel": "SR:A"}),
        RetrievalEvent("page_received", {"channel": "SR:A", "count": 3}),
        RetrievalEvent("channel_complete", {"channel": "SR:A"}),
    ]


def test_backend_selection():
    assert isinstance(get_visuals_backend("tqdm"), TqdmBackend)
    assert isinstance(get_visuals_backend("rich"), RichBackend)
    assert type(get_visuals_backend("off")) is VisualsBackend
    assert get_visuals_backend("off").observer() is None


def test_tqdm_backend_consumes_events():
    backend = TqdmBackend()
    observer = backend.observer()
    with backend.session():
        for event in _events():
            observer(event)
    assert backend._settle is None
    assert backend._pages is None


def test_rich_backend_tracks_pages_and_restores_logging():
    root = logging.getLogger()
    before = list(root.handlers)
    backend = RichBackend(console=Console(file=io.StringIO(), force_terminal=False))
    observer = backend.observer()
    with backend.session():
        for event in _events():
            observer(event)
    assert backend._pages == {"SR:A": 1}
    assert root.handlers == before

from __future__ import annotations

import json
import logging
import math
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, Optional
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from archread.domain.sample import Sample, Severity
from archread.errors import ConfigurationError
from archread.sources.archive import ArchiveClient, PageResponse

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ArchiverApplianceClient(ArchiveClient):
    """JSON retrieval client for an EPICS Archiver Appliance style service.

    Requests run on a single worker thread so callers only ever poll the
    returned futures.
    """

    def __init__(
        self,
        url: Optional[str],
        *,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        probe_interval: float = 5.0,
        opener: Optional[Callable[..., Any]] = None,
    ) -> None:
        if not url:
            raise ConfigurationError(
                "no archive url configured (use --archive or set RAD_ARCHIVE_URL)"
            )
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(headers or {"Accept": "application/json"})
        self.probe_interval = probe_interval
        self._open = opener or urlopen
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="archread")
        self._ready = False
        self._probe: Optional[Future] = None
        self._probe_failed_at: Optional[float] = None
        self._arm_probe()

    @classmethod
    def from_settings(cls, settings) -> "ArchiverApplianceClient":
        return cls(settings.url, timeout=settings.request_timeout_s)

    def describe(self) -> str:
        return self.url

    def _arm_probe(self) -> None:
        self._probe = self._executor.submit(self._fetch, f"{self.url}/bpl/getVersion")

    def is_ready(self) -> bool:
        if self._ready:
            return True
        probe = self._probe
        if probe is None:
            if time.monotonic() - (self._probe_failed_at or 0.0) >= self.probe_interval:
                self._arm_probe()
            return False
        if not probe.done():
            return False
        error = probe.exception()
        if error is None:
            self._ready = True
            return True
        logger.debug("Archive readiness probe failed: %s", error)
        self._probe = None
        self._probe_failed_at = time.monotonic()
        return False

    def request_page(
        self,
        channel: str,
        start: datetime,
        end: datetime,
        max_points: int,
        mode: str,
    ) -> Future:
        return self._executor.submit(self._read_page, channel, start, end, max_points, mode)

    def page_url(self, channel: str, start: datetime, end: datetime, max_points: int, mode: str) -> str:
        pv = channel
        if mode == "linear":
            span = max((end - start).total_seconds(), 0.0)
            bin_size = max(1, math.ceil(span / max_points))
            pv = f"linear_{bin_size}({channel})"
        query = urlencode({"pv": pv, "from": _iso_utc(start), "to": _iso_utc(end)})
        return f"{self.url}/data/getData.json?{query}"

    def _read_page(
        self,
        channel: str,
        start: datetime,
        end: datetime,
        max_points: int,
        mode: str,
    ) -> PageResponse:
        url = self.page_url(channel, start, end, max_points, mode)
        try:
            payload = json.loads(self._fetch(url))
        except (OSError, ValueError) as exc:
            return PageResponse(success=False, diagnostic=f"failed to fetch {url}: {exc}")
        try:
            samples = tuple(decode_samples(payload))[:max_points]
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            return PageResponse(success=False, diagnostic=f"malformed page from {url}: {exc!r}")
        return PageResponse(
            success=True,
            samples=samples,
            diagnostic=f"{len(samples)} samples from {self.url}",
        )

    def _fetch(self, url: str) -> bytes:
        req = Request(url, headers=self.headers)
        with self._open(req, timeout=self.timeout) as resp:
            return resp.read()

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def _iso_utc(value: datetime) -> str:
    text = value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")
    return text[:-3] + "Z"


def _scalar(value: Any) -> Optional[float]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def decode_samples(payload: Any) -> Iterator[Sample]:
    """Decode ``getData.json`` output into UTC samples.

    The payload is a list of ``{"meta": ..., "data": [...]}`` blocks, each
    point carrying ``secs``, ``nanos``, ``val``, ``severity`` and ``status``.
    """
    blocks: Iterable[Any] = payload if isinstance(payload, list) else [payload]
    for block in blocks:
        if not isinstance(block, dict):
            continue
        for point in block.get("data") or ():
            stamp = _EPOCH + timedelta(
                seconds=int(point.get("secs", 0)),
                microseconds=int(point.get("nanos", 0)) // 1000,
            )
            value = _scalar(point.get("val"))
            status = point.get("status") or ""
            if value is None:
                yield Sample(time=stamp, value=0.0, valid=False, severity=Severity.INVALID, status=str(status))
                continue
            yield Sample(
                time=stamp,
                value=value,
                valid=True,
                severity=Severity.from_code(point.get("severity", 0)),
                status=str(status),
            )

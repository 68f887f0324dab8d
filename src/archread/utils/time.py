from __future__ import annotations

import math
from datetime import datetime, timezone

STD_FORMAT = "%d/%m/%Y %H:%M:%S"

_INPUT_FORMATS = (
    "%d/%b/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%d/%b/%Y %H:%M",
    "%d/%m/%Y %H:%M",
    "%d/%b/%Y %H",
    "%d/%m/%Y %H",
    "%d/%b/%Y",
    "%d/%m/%Y",
)


def localize(value: datetime, time_zone: str) -> datetime:
    """Attach the run zone to a naive time; convert an aware one into it."""
    if value.tzinfo is None:
        if time_zone == "utc":
            return value.replace(tzinfo=timezone.utc)
        # A naive datetime's astimezone() treats it as system local time.
        return value.astimezone()
    return in_zone(value, time_zone)


def in_zone(value: datetime, time_zone: str) -> datetime:
    return value.astimezone(timezone.utc if time_zone == "utc" else None)


def parse_time(text: str, time_zone: str = "local") -> datetime:
    """Parse an operator supplied time such as ``16/06/2020 16:30:00``.

    Day-first formats are tried from most to least specific, then ISO-8601.
    """
    image = (text or "").strip()
    if not image:
        raise ValueError("empty time")
    for fmt in _INPUT_FORMATS:
        try:
            parsed = datetime.strptime(image, fmt)
        except ValueError:
            continue
        return localize(parsed, time_zone)
    try:
        parsed = datetime.fromisoformat(image)
    except ValueError as exc:
        raise ValueError(f"unrecognised time {text!r}") from exc
    return localize(parsed, time_zone)


def zone_abbreviation(value: datetime) -> str:
    return value.tzname() or ""


def format_time(value: datetime, *, millis: bool = False) -> str:
    text = value.strftime(STD_FORMAT)
    if millis:
        text += f".{value.microsecond // 1000:03d}"
    return text


def describe_time(value: datetime) -> str:
    """``dd/mm/yyyy HH:MM:SS ZZZ`` used in progress messages."""
    return f"{format_time(value)} {zone_abbreviation(value)}".rstrip()


def ticks_for(seconds: float, tick_ms: int) -> int:
    """Number of ticks covering ``seconds``; never less than one."""
    return max(1, math.ceil(seconds * 1000.0 / tick_ms))

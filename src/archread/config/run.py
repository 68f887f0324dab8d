from __future__ import annotations

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from archread.domain.channel import Channel
from archread.errors import ConfigurationError

logger = logging.getLogger(__name__)

MAX_CHANNELS = 20
MIN_FIXED_INTERVAL = 0.25
MULTI_CHANNEL_INTERVAL = 1.0

TimeZone = Literal["local", "utc"]
Sampling = Literal["raw", "linear"]


class RunConfig(BaseModel):
    """Immutable description of one retrieval run."""

    model_config = ConfigDict(frozen=True)

    time_zone: TimeZone = Field(default="local", description="local | utc")
    sampling: Sampling = Field(default="linear", description="raw | linear")
    fixed_interval: float | None = Field(
        default=None,
        description="Resample interval in seconds; None keeps archive sample times.",
    )
    output_path: Path
    start: datetime
    end: datetime

    @field_validator("fixed_interval")
    @classmethod
    def _clamp_fixed_interval(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if not math.isfinite(value):
            raise ValueError("fixed time must be a finite number of seconds")
        if value < MIN_FIXED_INTERVAL:
            logger.warning(
                "warning: fixed time limited to no less than %s seconds", MIN_FIXED_INTERVAL
            )
            return MIN_FIXED_INTERVAL
        return value

    @field_validator("output_path", mode="before")
    @classmethod
    def _require_output_path(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("missing output file")
        return value

    @field_validator("start", "end")
    @classmethod
    def _require_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("times must be timezone-aware")
        return value

    @model_validator(mode="after")
    def _validate_window(self):
        if self.end <= self.start:
            raise ValueError("end time must be after start time")
        return self

    @property
    def fixed(self) -> bool:
        return self.fixed_interval is not None

    @property
    def raw(self) -> bool:
        return self.sampling == "raw"


def build_run_config(values: Mapping[str, Any]) -> RunConfig:
    """Validate ``values`` into a RunConfig, reporting failures as ConfigurationError."""
    try:
        return RunConfig.model_validate(dict(values))
    except ValidationError as exc:
        raise ConfigurationError(validation_message(exc)) from exc


def prepare_run(config: RunConfig, names: Sequence[str]) -> tuple[RunConfig, list[Channel]]:
    """Create the channel list and apply the multi-channel sampling rule."""
    cleaned = [name.strip() for name in names if name and name.strip()]
    if not cleaned:
        raise ConfigurationError("missing pv name")
    if len(cleaned) > MAX_CHANNELS:
        raise ConfigurationError(
            f"at most {MAX_CHANNELS} channels may be requested, got {len(cleaned)}"
        )
    if len(cleaned) > 1 and not config.fixed:
        logger.warning(
            "warning: multiple PVs - auto selecting fixed time of %.1f s",
            MULTI_CHANNEL_INTERVAL,
        )
        config = config.model_copy(update={"fixed_interval": MULTI_CHANNEL_INTERVAL})
    return config, [Channel(name=name) for name in cleaned]


def validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    message = str(first.get("msg", "invalid configuration"))
    # pydantic prefixes messages raised from validators.
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {message}" if loc else message

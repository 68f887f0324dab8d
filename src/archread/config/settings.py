from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from archread.config.run import validation_message
from archread.errors import ConfigurationError
from archread.utils.load import load_yaml

VALID_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
VISUAL_CHOICES = ("auto", "tqdm", "rich", "off")

SETTINGS_ENV = "RAD_SETTINGS"
ARCHIVE_URL_ENV = "RAD_ARCHIVE_URL"


class ArchiveSettings(BaseModel):
    """Archive endpoint and pacing settings shared by every run."""

    client: str = Field(
        default="appliance",
        description="Entry point name of the archive client (group 'archread.clients').",
    )
    url: Optional[str] = Field(
        default=None,
        description="Archive retrieval endpoint, e.g. http://archiver:17668/retrieval",
    )
    max_points: int = Field(default=20000, ge=1, description="Maximum samples per page.")
    tick_ms: int = Field(default=100, ge=1, description="State machine tick period.")
    settle_delay_s: float = Field(default=20.0, ge=0.0)
    ready_timeout_s: float = Field(default=60.0, gt=0.0)
    page_timeout_s: float = Field(default=60.0, gt=0.0)
    request_timeout_s: float = Field(default=30.0, gt=0.0, description="HTTP socket timeout.")
    log_level: Optional[str] = Field(default="INFO")
    visuals: str = Field(default="auto", description="auto | tqdm | rich | off")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        name = str(value).upper()
        if name not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}, got {value!r}"
            )
        return name

    @field_validator("visuals", mode="before")
    @classmethod
    def _validate_visuals(cls, value):
        if value is None:
            return "auto"
        if isinstance(value, bool):
            return "auto" if value else "off"
        name = str(value).lower()
        if name not in VISUAL_CHOICES:
            raise ValueError(
                f"visuals must be one of {', '.join(VISUAL_CHOICES)}, got {value!r}"
            )
        return name

    @field_validator("url")
    @classmethod
    def _strip_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        text = value.strip().rstrip("/")
        return text or None


def load_settings(
    path: Optional[Path] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ArchiveSettings:
    """Merge defaults, the YAML settings file, environment and CLI overrides."""
    env = os.environ if environ is None else environ
    if path is None and env.get(SETTINGS_ENV):
        path = Path(env[SETTINGS_ENV])

    data: dict[str, Any] = {}
    if path is not None:
        try:
            data.update(load_yaml(Path(path)))
        except (FileNotFoundError, ValueError, TypeError) as exc:
            raise ConfigurationError(str(exc)) from exc

    url = env.get(ARCHIVE_URL_ENV)
    if url:
        data["url"] = url
    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return ArchiveSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(validation_message(exc)) from exc

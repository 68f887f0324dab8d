from __future__ import annotations


class RadError(Exception):
    """Base class for fatal run errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RadError):
    """Raised when run configuration or operator input is invalid."""


class ArchiveTimeoutError(RadError):
    """Raised when the archive never becomes ready or a page never arrives."""

    def __init__(self, message: str, *, phase: str) -> None:
        super().__init__(message)
        self.phase = phase


class OutputError(RadError):
    """Raised when the report destination cannot be written."""

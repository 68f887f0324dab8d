"""Archive reader: paginated retrieval, reconciliation and resampling of channel history."""

__version__ = "0.3.0"

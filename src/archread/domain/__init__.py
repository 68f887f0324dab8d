from .channel import Channel, ChannelStatus, RetrievalWindow
from .sample import Sample, Series, Severity, is_strictly_increasing, to_zone

__all__ = [
    "Channel",
    "ChannelStatus",
    "RetrievalWindow",
    "Sample",
    "Series",
    "Severity",
    "is_strictly_increasing",
    "to_zone",
]

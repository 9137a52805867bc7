"""Stream tags and the multiplexed stream client."""

from .base import EventStream, StreamType, registered_streams, tag_for
from .client import StreamClient, Subscription
from .tags import AccountUpdates, TradeUpdates

__all__ = [
    "AccountUpdates",
    "EventStream",
    "StreamClient",
    "StreamType",
    "Subscription",
    "TradeUpdates",
    "registered_streams",
    "tag_for",
]

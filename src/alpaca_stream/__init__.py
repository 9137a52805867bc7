"""Typed account and trade update streams for the Alpaca trading API."""

from .config import ApiInfo
from .domain import AccountUpdate, Order, TradeStatus, TradeUpdate
from .errors import (
    AuthenticationError,
    ClientError,
    ConfigError,
    DecodeError,
    RequestError,
    SubscriptionError,
    TransportError,
)
from .streams import AccountUpdates, EventStream, StreamClient, StreamType, TradeUpdates

__all__ = [
    "AccountUpdate",
    "AccountUpdates",
    "ApiInfo",
    "AuthenticationError",
    "ClientError",
    "ConfigError",
    "DecodeError",
    "EventStream",
    "Order",
    "RequestError",
    "StreamClient",
    "StreamType",
    "SubscriptionError",
    "TradeStatus",
    "TradeUpdate",
    "TradeUpdates",
    "TransportError",
]

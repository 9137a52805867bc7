"""Stream tags for the account and trade update streams."""

from __future__ import annotations

from alpaca_stream.domain.events import AccountUpdate, TradeUpdate
from alpaca_stream.streams.base import EventStream, StreamType


class AccountUpdates(EventStream[AccountUpdate]):
    """Subscribe to the ``account_updates`` stream."""

    stream = StreamType.ACCOUNT_UPDATES
    event = AccountUpdate


class TradeUpdates(EventStream[TradeUpdate]):
    """Subscribe to the ``trade_updates`` stream."""

    stream = StreamType.TRADE_UPDATES
    event = TradeUpdate

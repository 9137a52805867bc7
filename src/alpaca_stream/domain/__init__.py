"""Domain models and stream messages."""

from .events import AccountUpdate, TradeStatus, TradeUpdate
from .models import (
    AccountId,
    AssetClass,
    Order,
    OrderId,
    OrderRequest,
    OrderSide,
    OrderType,
    TimeInForce,
)

__all__ = [
    "AccountId",
    "AccountUpdate",
    "AssetClass",
    "Order",
    "OrderId",
    "OrderRequest",
    "OrderSide",
    "OrderType",
    "TimeInForce",
    "TradeStatus",
    "TradeUpdate",
]

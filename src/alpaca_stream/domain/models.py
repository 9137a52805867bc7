"""Order and account models shared by the REST and stream clients."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, NewType, Self
from uuid import UUID

from alpaca_stream.domain.codecs import (
    parse_bool,
    parse_enum,
    parse_object,
    parse_optional_decimal,
    parse_optional_time,
    parse_str,
    parse_uuid,
    require,
)

AccountId = NewType("AccountId", UUID)
OrderId = NewType("OrderId", UUID)


class OrderSide(StrEnum):
    """Supported order directions."""

    BUY = "buy"
    SELL = "sell"


class OrderType(StrEnum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop_limit"
    TRAILING_STOP = "trailing_stop"


class TimeInForce(StrEnum):
    DAY = "day"
    GTC = "gtc"
    OPG = "opg"
    CLS = "cls"
    IOC = "ioc"
    FOK = "fok"


class AssetClass(StrEnum):
    US_EQUITY = "us_equity"
    US_OPTION = "us_option"
    CRYPTO = "crypto"


@dataclass(frozen=True)
class Order:
    """Order entity as reported by the broker."""

    id: OrderId
    client_order_id: str
    status: str
    asset_id: UUID
    symbol: str
    asset_class: AssetClass
    type: OrderType
    side: OrderSide
    time_in_force: TimeInForce
    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    filled_at: datetime | None = None
    expired_at: datetime | None = None
    canceled_at: datetime | None = None
    qty: Decimal | None = None
    notional: Decimal | None = None
    filled_qty: Decimal = Decimal("0")
    filled_avg_price: Decimal | None = None
    limit_price: Decimal | None = None
    stop_price: Decimal | None = None
    extended_hours: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        """Decode an order object; unknown keys are ignored."""
        payload = parse_object(payload, path="$")
        return cls(
            id=OrderId(parse_uuid(require(payload, "id"), path="id")),
            client_order_id=parse_str(
                require(payload, "client_order_id"), path="client_order_id"
            ),
            status=parse_str(require(payload, "status"), path="status"),
            asset_id=parse_uuid(require(payload, "asset_id"), path="asset_id"),
            symbol=parse_str(require(payload, "symbol"), path="symbol"),
            asset_class=parse_enum(
                AssetClass, require(payload, "asset_class"), path="asset_class"
            ),
            type=parse_enum(OrderType, require(payload, "type"), path="type"),
            side=parse_enum(OrderSide, require(payload, "side"), path="side"),
            time_in_force=parse_enum(
                TimeInForce, require(payload, "time_in_force"), path="time_in_force"
            ),
            created_at=parse_optional_time(payload.get("created_at"), path="created_at"),
            updated_at=parse_optional_time(payload.get("updated_at"), path="updated_at"),
            submitted_at=parse_optional_time(payload.get("submitted_at"), path="submitted_at"),
            filled_at=parse_optional_time(payload.get("filled_at"), path="filled_at"),
            expired_at=parse_optional_time(payload.get("expired_at"), path="expired_at"),
            canceled_at=parse_optional_time(payload.get("canceled_at"), path="canceled_at"),
            qty=parse_optional_decimal(payload.get("qty"), path="qty"),
            notional=parse_optional_decimal(payload.get("notional"), path="notional"),
            filled_qty=(
                parse_optional_decimal(payload.get("filled_qty"), path="filled_qty")
                or Decimal("0")
            ),
            filled_avg_price=parse_optional_decimal(
                payload.get("filled_avg_price"), path="filled_avg_price"
            ),
            limit_price=parse_optional_decimal(payload.get("limit_price"), path="limit_price"),
            stop_price=parse_optional_decimal(payload.get("stop_price"), path="stop_price"),
            extended_hours=parse_bool(payload.get("extended_hours"), path="extended_hours"),
        )


@dataclass(frozen=True)
class OrderRequest:
    """Order intent submitted through the REST client."""

    symbol: str
    qty: Decimal
    side: OrderSide
    type: OrderType = OrderType.MARKET
    time_in_force: TimeInForce = TimeInForce.DAY
    limit_price: Decimal | None = None
    stop_price: Decimal | None = None
    client_order_id: str | None = None

    def to_body(self) -> dict[str, Any]:
        """Render the JSON body for ``POST /v2/orders``."""
        body: dict[str, Any] = {
            "symbol": self.symbol.strip().upper(),
            "qty": str(self.qty),
            "side": self.side.value,
            "type": self.type.value,
            "time_in_force": self.time_in_force.value,
        }
        if self.limit_price is not None:
            body["limit_price"] = str(self.limit_price)
        if self.stop_price is not None:
            body["stop_price"] = str(self.stop_price)
        if self.client_order_id:
            body["client_order_id"] = self.client_order_id
        return body

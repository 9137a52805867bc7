"""Messages delivered over the account and trade update streams."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, Self

from alpaca_stream.domain.codecs import (
    parse_decimal,
    parse_enum,
    parse_object,
    parse_optional_time,
    parse_str,
    parse_uuid,
    require,
)
from alpaca_stream.domain.models import AccountId, Order
from alpaca_stream.errors import DecodeError


class TradeStatus(StrEnum):
    """Lifecycle state reported with a trade update."""

    # Received and routed to the exchanges.
    NEW = "new"
    PARTIAL_FILL = "partial_fill"
    FILLED = "fill"
    # No further updates until the next trading day.
    DONE_FOR_DAY = "done_for_day"
    CANCELED = "canceled"
    EXPIRED = "expired"
    PENDING_CANCEL = "pending_cancel"
    # A trade is guaranteed, usually at a stated price or better, but has not occurred.
    STOPPED = "stopped"
    REJECTED = "rejected"
    # Not eligible for trading; rare.
    SUSPENDED = "suspended"
    # Routed, not yet accepted for execution.
    PENDING_NEW = "pending_new"
    # Done for the day, settlement calculations still pending.
    CALCULATED = "calculated"

    @property
    def is_terminal(self) -> bool:
        """True when no further updates will arrive for the order."""
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {TradeStatus.FILLED, TradeStatus.CANCELED, TradeStatus.EXPIRED, TradeStatus.REJECTED}
)


@dataclass(frozen=True)
class AccountUpdate:
    """Account snapshot pushed on the ``account_updates`` stream."""

    id: AccountId
    created_at: datetime | None
    updated_at: datetime | None
    deleted_at: datetime | None
    status: str
    currency: str
    cash: Decimal
    withdrawable_cash: Decimal

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        payload = parse_object(payload, path="$")
        return cls(
            id=AccountId(parse_uuid(require(payload, "id"), path="id")),
            created_at=parse_optional_time(payload.get("created_at"), path="created_at"),
            updated_at=parse_optional_time(payload.get("updated_at"), path="updated_at"),
            deleted_at=parse_optional_time(payload.get("deleted_at"), path="deleted_at"),
            status=parse_str(require(payload, "status"), path="status"),
            currency=parse_str(require(payload, "currency"), path="currency"),
            cash=parse_decimal(require(payload, "cash"), path="cash"),
            # Not checked against cash; the broker owns that relation.
            withdrawable_cash=parse_decimal(
                require(payload, "cash_withdrawable"), path="cash_withdrawable"
            ),
        )


@dataclass(frozen=True)
class TradeUpdate:
    """Order lifecycle notification pushed on the ``trade_updates`` stream."""

    event: TradeStatus
    order: Order

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self:
        payload = parse_object(payload, path="$")
        event = parse_enum(TradeStatus, require(payload, "event"), path="event")
        raw_order = parse_object(require(payload, "order"), path="order")
        try:
            order = Order.from_dict(raw_order)
        except DecodeError as exc:
            raise exc.nested("order") from exc
        return cls(event=event, order=order)

"""Console logging for stream watchers."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from alpaca_stream.domain.events import AccountUpdate, TradeUpdate
from alpaca_stream.errors import DecodeError


def setup_logger(log_level: str = "INFO") -> logging.Logger:
    """Configure and return the package logger."""
    logger = logging.getLogger("alpaca_stream")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.propagate = False

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    return logger


class StreamLogger:
    """Console logger with fixed line types."""

    def __init__(self, level: str = "INFO") -> None:
        self._logger = logging.getLogger("alpaca_stream.watch")
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s | %(message)s", "%Y-%m-%d %H:%M:%S")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    def subscribed(self, stream: str) -> None:
        self._logger.info("subscribed | %s", stream)

    def account(self, update: AccountUpdate) -> None:
        parts = [
            f"account | {self._short_id(str(update.id))}",
            update.status,
            f"cash {self._format_money(update.cash, update.currency)}",
            f"withdrawable {self._format_money(update.withdrawable_cash, update.currency)}",
        ]
        if update.deleted_at is not None:
            parts.append(f"deleted {self._short_ts(update.deleted_at)}")
        elif update.updated_at is not None:
            parts.append(f"at {self._short_ts(update.updated_at)}")
        self._logger.info(" | ".join(parts))

    def trade(self, update: TradeUpdate) -> None:
        order = update.order
        qty = order.qty if order.qty is not None else order.notional
        parts = [
            f"trade | {update.event.value}",
            f"{order.symbol} {order.side.value} {self._format_qty(qty)}",
            f"filled {self._format_qty(order.filled_qty)}",
        ]
        if order.filled_avg_price is not None:
            parts.append(f"fill ${order.filled_avg_price:,.3f}")
        parts.append(f"order {self._short_id(str(order.id))}")
        if update.event.is_terminal:
            parts.append("final")
        self._logger.info(" | ".join(parts))

    def decode_error(self, stream: str, error: DecodeError) -> None:
        self._logger.warning("skip | %s | %s", stream, error)

    def error(self, message: str) -> None:
        self._logger.error("error | %s", message)

    @staticmethod
    def _short_id(value: str | None, head: int = 8, tail: int = 4) -> str:
        if not value:
            return ""
        if len(value) <= head + tail + 1:
            return value
        return f"{value[:head]}...{value[-tail:]}"

    @staticmethod
    def _format_money(value: Decimal, currency: str) -> str:
        if currency.upper() == "USD":
            return f"${value:,.2f}"
        return f"{value:,.2f} {currency}"

    @staticmethod
    def _format_qty(value: Decimal | None) -> str:
        if value is None:
            return "?"
        text = format(value.normalize(), "f")
        return "0" if text in {"-0", ""} else text

    @staticmethod
    def _short_ts(value: datetime) -> str:
        return value.strftime("%H:%M:%S")

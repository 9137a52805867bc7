from __future__ import annotations

import asyncio
import copy
import json
from typing import Any

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from alpaca_stream.config import ApiInfo
from alpaca_stream.streams import client as client_module

ORDER_PAYLOAD: dict[str, Any] = {
    "id": "61e69015-8549-4bfd-b9c3-01e75843f47d",
    "client_order_id": "eb9e2aaa-f71a-4f51-b5b4-52a6c565dad4",
    "created_at": "2021-03-16T18:38:01.942282Z",
    "updated_at": "2021-03-16T18:38:01.942282Z",
    "submitted_at": "2021-03-16T18:38:01.937734Z",
    "filled_at": "2021-03-16T18:38:02.123456789Z",
    "expired_at": None,
    "canceled_at": None,
    "failed_at": None,
    "asset_id": "b0b6dd9d-8b9b-48a9-ba46-b9d54906e415",
    "symbol": "AAPL",
    "asset_class": "us_equity",
    "notional": None,
    "qty": "1",
    "filled_qty": "1",
    "filled_avg_price": "120.07",
    "order_class": "",
    "order_type": "market",
    "type": "market",
    "side": "buy",
    "time_in_force": "day",
    "limit_price": None,
    "stop_price": None,
    "status": "filled",
    "extended_hours": False,
    "legs": None,
}

ACCOUNT_PAYLOAD: dict[str, Any] = {
    "id": "904837e3-3b76-47ec-b432-046db621571b",
    "created_at": "2019-08-06T12:00:00Z",
    "updated_at": "2019-08-06T12:00:05Z",
    "deleted_at": None,
    "status": "ACTIVE",
    "currency": "USD",
    "cash": "1000.00",
    "cash_withdrawable": "750.50",
}

_END = object()
_DROP = object()


class FakeWebSocket:
    """In-memory stand-in for the broker's stream endpoint.

    Answers authenticate and listen actions the way the broker does and
    replays frames pushed by the test.
    """

    def __init__(self) -> None:
        self.url: str | None = None
        self.connects = 0
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self.authorized = True
        self.acknowledge = True
        self.answer_listen = True
        self._after_listen: list[Any] = []
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, frame: dict[str, Any] | str | bytes) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._incoming.put_nowait(frame)

    def push_event(self, stream: str, data: Any) -> None:
        self.push({"stream": stream, "data": data})

    def script_event(self, stream: str, data: Any) -> None:
        """Queue a frame to be sent once the next listen is acknowledged."""
        self._after_listen.append({"stream": stream, "data": data})

    def finish(self) -> None:
        self._incoming.put_nowait(_END)

    def drop(self) -> None:
        self._incoming.put_nowait(_DROP)

    def actions(self, name: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["action"] == name]

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        payload = json.loads(message)
        self.sent.append(payload)
        if payload["action"] == "authenticate":
            status = "authorized" if self.authorized else "unauthorized"
            self.push_event("authorization", {"action": "authenticate", "status": status})
        elif payload["action"] == "listen" and self.answer_listen:
            streams = payload["data"]["streams"] if self.acknowledge else []
            self.push_event("listening", {"streams": streams})
            for frame in self._after_listen:
                self.push(frame)
            self._after_listen.clear()

    async def recv(self) -> str | bytes:
        item = await self._incoming.get()
        if item is _END:
            raise ConnectionClosedOK(None, None)
        if item is _DROP:
            raise ConnectionClosedError(None, None)
        return item

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> str | bytes:
        item = await self._incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if item is _DROP:
            raise ConnectionClosedError(None, None)
        return item

    async def close(self) -> None:
        self.closed = True
        self._incoming.put_nowait(_END)


@pytest.fixture
def api_info() -> ApiInfo:
    return ApiInfo(base_url="https://paper-api.alpaca.markets", key_id="key", secret="secret")


@pytest.fixture
def fake_ws(monkeypatch: pytest.MonkeyPatch) -> FakeWebSocket:
    ws = FakeWebSocket()

    async def fake_connect(url: str, *args: Any, **kwargs: Any) -> FakeWebSocket:
        ws.connects += 1
        ws.url = url
        return ws

    monkeypatch.setattr(client_module.websockets, "connect", fake_connect)
    return ws


@pytest.fixture
def order_payload() -> dict[str, Any]:
    return copy.deepcopy(ORDER_PAYLOAD)


@pytest.fixture
def account_payload() -> dict[str, Any]:
    return copy.deepcopy(ACCOUNT_PAYLOAD)

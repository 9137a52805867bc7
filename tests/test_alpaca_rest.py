from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest
import requests

from alpaca_stream.brokers.alpaca_rest import AlpacaRestClient
from alpaca_stream.config import ApiInfo
from alpaca_stream.domain.models import OrderRequest, OrderSide, OrderType, TimeInForce
from alpaca_stream.errors import RequestError


class _CaptureRestClient(AlpacaRestClient):
    def __init__(self, api_info: ApiInfo, response: Any = None) -> None:
        super().__init__(api_info)
        self.response = response
        self.requests: list[dict[str, Any]] = []

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        self.requests.append({"method": method, "path": path, "json": json})
        return self.response


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b"" if payload is None else b"{}"
        self.headers = requests.structures.CaseInsensitiveDict()

    def json(self) -> Any:
        return self._payload


def test_session_carries_credentials(api_info: ApiInfo) -> None:
    client = AlpacaRestClient(api_info)

    assert client.base_url == "https://paper-api.alpaca.markets"
    assert client.session.headers["APCA-API-KEY-ID"] == "key"
    assert client.session.headers["APCA-API-SECRET-KEY"] == "secret"


def test_submit_order_posts_body_and_decodes_order(
    api_info: ApiInfo, order_payload: dict[str, Any]
) -> None:
    client = _CaptureRestClient(api_info, response=order_payload)
    request = OrderRequest(
        symbol="aapl",
        qty=Decimal("1"),
        side=OrderSide.BUY,
        type=OrderType.LIMIT,
        time_in_force=TimeInForce.DAY,
        limit_price=Decimal("1.00"),
        client_order_id="cid-1",
    )

    order = client.submit_order(request)

    assert client.requests == [
        {
            "method": "POST",
            "path": "/v2/orders",
            "json": {
                "symbol": "AAPL",
                "qty": "1",
                "side": "buy",
                "type": "limit",
                "time_in_force": "day",
                "limit_price": "1.00",
                "client_order_id": "cid-1",
            },
        }
    ]
    assert str(order.id) == order_payload["id"]


def test_cancel_and_get_order_paths(api_info: ApiInfo, order_payload: dict[str, Any]) -> None:
    client = _CaptureRestClient(api_info, response=order_payload)
    order_id = order_payload["id"]

    client.cancel_order(order_id)
    fetched = client.get_order(order_id)

    assert [entry["method"] for entry in client.requests] == ["DELETE", "GET"]
    assert client.requests[0]["path"] == f"/v2/orders/{order_id}"
    assert str(fetched.id) == order_id


def test_client_errors_are_not_retried(
    api_info: ApiInfo, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = AlpacaRestClient(api_info)
    calls: list[str] = []

    def fake_request(**kwargs: Any) -> _FakeResponse:
        calls.append(kwargs["url"])
        return _FakeResponse(403, text="forbidden")

    monkeypatch.setattr(client.session, "request", fake_request)

    with pytest.raises(RequestError, match="403") as excinfo:
        client.get_account()

    assert excinfo.value.status_code == 403
    assert calls == ["https://paper-api.alpaca.markets/v2/account"]


def test_server_errors_are_retried(api_info: ApiInfo, monkeypatch: pytest.MonkeyPatch) -> None:
    client = AlpacaRestClient(api_info, max_retries=3)
    responses = [_FakeResponse(503, text="busy"), _FakeResponse(200, {"id": "acct"})]

    monkeypatch.setattr(client.session, "request", lambda **_kwargs: responses.pop(0))
    monkeypatch.setattr("alpaca_stream.brokers.alpaca_rest.sleep", lambda _seconds: None)

    assert client.get_account() == {"id": "acct"}
    assert responses == []


def test_empty_response_body_returns_none(
    api_info: ApiInfo, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = AlpacaRestClient(api_info)
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: _FakeResponse(204))

    assert client._request("DELETE", "/v2/orders/abc") is None


def test_rate_limit_is_retried_until_attempts_run_out(
    api_info: ApiInfo, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = AlpacaRestClient(api_info, max_retries=2)
    delays: list[float] = []

    monkeypatch.setattr(
        client.session, "request", lambda **_kwargs: _FakeResponse(429, text="slow down")
    )
    monkeypatch.setattr("alpaca_stream.brokers.alpaca_rest.sleep", delays.append)

    with pytest.raises(RequestError, match="429") as excinfo:
        client.get_account()

    assert excinfo.value.status_code == 429
    assert delays == [1.0]

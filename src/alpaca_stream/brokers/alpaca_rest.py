"""Alpaca REST client for the order endpoints (paper or live)."""

from __future__ import annotations

import logging
from time import sleep
from typing import Any
from uuid import UUID

import requests

from alpaca_stream.config import ApiInfo
from alpaca_stream.domain.models import Order, OrderRequest
from alpaca_stream.errors import RequestError

logger = logging.getLogger(__name__)


class AlpacaRestClient:
    """REST wrapper with retry and rate-limit handling."""

    def __init__(
        self,
        api_info: ApiInfo,
        timeout: int = 20,
        max_retries: int = 4,
    ) -> None:
        self.base_url = api_info.base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = requests.Session()
        self.session.headers.update(
            {
                "APCA-API-KEY-ID": api_info.key_id,
                "APCA-API-SECRET-KEY": api_info.secret,
                "Content-Type": "application/json",
            }
        )

    def get_account(self) -> dict[str, Any]:
        payload = self._request("GET", "/v2/account")
        return payload if isinstance(payload, dict) else {}

    def submit_order(self, request: OrderRequest) -> Order:
        payload = self._request("POST", "/v2/orders", json=request.to_body())
        order = Order.from_dict(payload)
        logger.info("Submitted order %s (%s %s %s)", order.id, order.side, order.qty, order.symbol)
        return order

    def get_order(self, order_id: UUID | str) -> Order:
        return Order.from_dict(self._request("GET", f"/v2/orders/{order_id}"))

    def cancel_order(self, order_id: UUID | str) -> None:
        self._request("DELETE", f"/v2/orders/{order_id}")
        logger.info("Requested cancel for order %s", order_id)

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        for attempt in range(1, self.max_retries + 1):
            last_attempt = attempt == self.max_retries
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    json=json,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                if last_attempt:
                    raise RequestError(f"Alpaca request failed for {path}: {exc}") from exc
                logger.warning("%s %s failed (%s); retry %d", method, path, exc, attempt)
                sleep(float(attempt))
                continue

            retryable = response.status_code == 429 or response.status_code >= 500
            if retryable and not last_attempt:
                logger.warning(
                    "%s %s returned %d; retry %d", method, path, response.status_code, attempt
                )
                sleep(float(attempt))
                continue

            if response.status_code >= 400:
                detail = response.text.strip() or "Request rejected"
                raise RequestError(
                    f"Alpaca API error {response.status_code} for {path}: {detail}",
                    response.status_code,
                )

            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise RequestError(
                    f"Alpaca response for {path} was not valid JSON", response.status_code
                ) from exc

        raise RequestError(f"Alpaca request failed for {path}")

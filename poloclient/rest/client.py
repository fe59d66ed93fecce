"""Poloniex REST client for public market data and signed trading calls.

Public commands are ``GET /public?command=...``. Private commands are
``POST /tradingApi`` with a form body carrying ``command`` and ``nonce``;
the body is signed with HMAC-SHA512 keyed by the API secret and sent in the
``Key``/``Sign`` headers.

The exchange rejects a nonce that is not larger than the previous one, so
nonce generation and the request itself run under a single lock: concurrent
private calls are serialized and reach the exchange in nonce order.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import threading
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode, urljoin

import httpx

from poloclient.config.models import ApiCredentialsConfig, ClientConfig
from poloclient.core.errors import ApiError, ConfigurationError
from poloclient.core.time_utils import now_ns
from poloclient.core.types import Nonce
from poloclient.push.client import PushClient

from .models import (
    Balance,
    Currency,
    Order,
    OrderRequest,
    Ticker,
    WithdrawRequest,
    format_number,
    parse_balances_response,
    parse_complete_balances_response,
    parse_currencies_response,
    parse_order_response,
    parse_ticker_response,
    raise_for_error,
)

LOGGER = logging.getLogger(__name__)

PUBLIC_PATH = "public"
PRIVATE_PATH = "tradingApi"


class PoloniexClient:
    """Synchronous REST client for Poloniex.

    Parameters
    ----------
    config:
        :class:`ClientConfig` with credentials, REST endpoint/timeout and the
        push settings used by :meth:`push_client`. Defaults to a public-only
        configuration.
    session:
        Optional pre-configured :class:`httpx.Client` (e.g. with a
        ``MockTransport`` in tests).

    Notes
    -----
    Calls are not retried: a private call that timed out may still have been
    executed by the exchange.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: httpx.Client | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        credentials: ApiCredentialsConfig = self.config.credentials
        self.api_key = credentials.api_key
        self._api_secret = credentials.api_secret.encode()
        endpoint = self.config.rest.endpoint
        self._base_url = endpoint if endpoint.endswith("/") else f"{endpoint}/"
        self._client = session or httpx.Client(timeout=self.config.rest.timeout)
        self._nonce_lock = threading.Lock()
        self._last_nonce = 0

    def close(self) -> None:
        """Close the underlying HTTP client."""

        self._client.close()

    def __enter__(self) -> "PoloniexClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return urljoin(self._base_url, path)

    def _public(self, command: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        query: Dict[str, Any] = dict(params or {})
        query["command"] = command
        url = self._url(PUBLIC_PATH)
        LOGGER.debug("GET %s", url, extra={"command": command})
        response = self._client.get(url, params=query, headers={"Accept": "application/json"})
        return self._decode(response, command)

    def _private(self, command: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        if not self.config.credentials.has_credentials:
            raise ConfigurationError(f"API key and secret are required for {command!r}")
        url = self._url(PRIVATE_PATH)
        with self._nonce_lock:
            nonce = self._next_nonce()
            body = self._encode_body(command, nonce, params)
            headers = {
                "Accept": "application/json",
                "Content-Type": "application/x-www-form-urlencoded",
                "Key": self.api_key,
                "Sign": self.sign(body),
            }
            LOGGER.debug("POST %s", url, extra={"command": command})
            response = self._client.post(url, content=body.encode(), headers=headers)
        return self._decode(response, command)

    def _next_nonce(self) -> Nonce:
        """Nanosecond timestamp, bumped if the clock did not advance. Caller holds the lock."""

        nonce = max(now_ns(), self._last_nonce + 1)
        self._last_nonce = nonce
        return Nonce(nonce)

    @staticmethod
    def _encode_body(command: str, nonce: Nonce, params: Optional[Mapping[str, Any]]) -> str:
        values: Dict[str, Any] = dict(params or {})
        values["command"] = command
        values["nonce"] = str(nonce)
        return urlencode(sorted(values.items()))

    def sign(self, body: str) -> str:
        """Hex HMAC-SHA512 of ``body`` keyed by the API secret."""

        return hmac.new(self._api_secret, body.encode(), hashlib.sha512).hexdigest()

    @staticmethod
    def _decode(response: httpx.Response, command: str) -> Any:
        if response.status_code != httpx.codes.OK:
            raise ApiError(
                f"{command} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(f"{command} returned invalid JSON", status_code=response.status_code) from exc
        raise_for_error(payload)
        return payload

    # ------------------------------------------------------------------
    # Public market data
    # ------------------------------------------------------------------
    def get_tickers(self) -> Dict[str, Ticker]:
        """Return the latest ticker of every currency pair (``returnTicker``)."""

        return parse_ticker_response(self._public("returnTicker"))

    def get_currencies(self) -> Dict[str, Currency]:
        """Return every currency listed on the exchange (``returnCurrencies``)."""

        return parse_currencies_response(self._public("returnCurrencies"))

    # ------------------------------------------------------------------
    # Trading API (signed)
    # ------------------------------------------------------------------
    def get_balances(self) -> Dict[str, float]:
        """Return available balances keyed by currency (``returnBalances``)."""

        return parse_balances_response(self._private("returnBalances"))

    def get_complete_balances(self) -> Dict[str, Balance]:
        """Return available, on-order and BTC-estimated balances (``returnCompleteBalances``)."""

        return parse_complete_balances_response(self._private("returnCompleteBalances"))

    def withdraw(self, request: WithdrawRequest) -> str:
        """Request a withdrawal. Returns the exchange's confirmation message."""

        params = {
            "currency": request.currency,
            "amount": format_number(request.amount),
            "address": request.address,
        }
        payload = self._private("withdraw", params)
        if isinstance(payload, Mapping):
            return str(payload.get("response", ""))
        return ""

    def place_order(self, order: OrderRequest) -> Order:
        """Place a limit buy or sell order; the order type is the command."""

        payload = self._private(order.type.value, order.to_params())
        return parse_order_response(payload)

    # ------------------------------------------------------------------
    # Push feed
    # ------------------------------------------------------------------
    def push_client(self) -> PushClient:
        """Build a :class:`PushClient` from the same configuration."""

        return PushClient(self.config.push)

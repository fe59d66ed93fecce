"""REST payload models and response parsers.

Poloniex returns most numbers as decimal strings; the parsers below convert
them to floats and raise :class:`ApiError` when the exchange reports an
``error`` field instead of data.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from poloclient.core.errors import ApiError
from poloclient.core.time_utils import now_utc
from poloclient.core.types import Symbol


class OrderType(str, Enum):
    """Order side; the value doubles as the trading API command."""

    BUY = "buy"
    SELL = "sell"


@dataclass(slots=True)
class Ticker:
    """Entry of the ``returnTicker`` response."""

    symbol: Symbol
    last: float
    lowest_ask: float
    highest_bid: float
    percent_change: float
    base_volume: float
    quote_volume: float
    is_frozen: int
    high_24hr: float
    low_24hr: float
    received_at: datetime


@dataclass(slots=True)
class Currency:
    """Entry of the ``returnCurrencies`` response."""

    id: int
    name: str
    tx_fee: float
    min_conf: int
    deposit_address: Optional[str] = None
    disabled: bool = False
    frozen: bool = False
    delisted: bool = False


@dataclass(slots=True)
class Balance:
    """Available, on-order and estimated BTC value of one currency."""

    available: float
    on_orders: float
    btc_value: float


@dataclass(slots=True)
class WithdrawRequest:
    currency: str
    amount: float
    address: str


@dataclass(slots=True)
class OrderRequest:
    """Limit order parameters for the ``buy``/``sell`` commands."""

    type: OrderType
    currency_pair: str
    rate: float
    amount: float
    fill_or_kill: bool = False
    immediate_or_cancel: bool = False
    post_only: bool = False

    def to_params(self) -> Dict[str, str]:
        params = {
            "currencyPair": self.currency_pair,
            "rate": format_number(self.rate),
            "amount": format_number(self.amount),
        }
        if self.fill_or_kill:
            params["fillOrKill"] = "1"
        if self.immediate_or_cancel:
            params["immediateOrCancel"] = "1"
        if self.post_only:
            params["postOnly"] = "1"
        return params


@dataclass(slots=True)
class OrderTrade:
    """Trade executed immediately when an order was placed."""

    trade_id: str
    type: str
    rate: float
    amount: float
    total: float
    date: str


@dataclass(slots=True)
class Order:
    order_number: int
    resulting_trades: List[OrderTrade] = field(default_factory=list)


def format_number(value: float) -> str:
    """Shortest decimal representation without exponent (``1e-08`` → ``0.00000001``)."""

    return format(Decimal(repr(float(value))).normalize(), "f")


def raise_for_error(payload: Any) -> None:
    if isinstance(payload, Mapping) and payload.get("error"):
        raise ApiError(str(payload["error"]), payload=payload)


def _as_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    raise_for_error(payload)
    if not isinstance(payload, Mapping):
        raise ApiError(f"Unexpected {what} payload: {type(payload).__name__}")
    return payload


def parse_ticker_response(payload: Any) -> Dict[str, Ticker]:
    """Convert ``returnTicker`` into :class:`Ticker` objects keyed by pair."""

    received_at = now_utc()
    tickers: Dict[str, Ticker] = {}
    for pair, item in _as_mapping(payload, "returnTicker").items():
        # Structure: {'last': '0.0251', 'lowestAsk': '0.0258', ..., 'isFrozen': '0', 'high24hr': '...'}
        tickers[pair] = Ticker(
            symbol=Symbol(pair),
            last=float(item.get("last", 0.0)),
            lowest_ask=float(item.get("lowestAsk", 0.0)),
            highest_bid=float(item.get("highestBid", 0.0)),
            percent_change=float(item.get("percentChange", 0.0)),
            base_volume=float(item.get("baseVolume", 0.0)),
            quote_volume=float(item.get("quoteVolume", 0.0)),
            is_frozen=int(item.get("isFrozen", 0)),
            high_24hr=float(item.get("high24hr", 0.0)),
            low_24hr=float(item.get("low24hr", 0.0)),
            received_at=received_at,
        )
    return tickers


def parse_currencies_response(payload: Any) -> Dict[str, Currency]:
    """Convert ``returnCurrencies`` into :class:`Currency` objects keyed by code."""

    currencies: Dict[str, Currency] = {}
    for code, item in _as_mapping(payload, "returnCurrencies").items():
        currencies[code] = Currency(
            id=int(item.get("id", 0)),
            name=str(item.get("name", "")),
            tx_fee=float(item.get("txFee", 0.0)),
            min_conf=int(item.get("minConf", 0)),
            deposit_address=item.get("depositAddress"),
            disabled=bool(int(item.get("disabled", 0))),
            frozen=bool(int(item.get("frozen", 0))),
            delisted=bool(int(item.get("delisted", 0))),
        )
    return currencies


def parse_balances_response(payload: Any) -> Dict[str, float]:
    """``returnBalances`` maps currency → available amount (as a string)."""

    return {code: float(amount) for code, amount in _as_mapping(payload, "returnBalances").items()}


def parse_complete_balances_response(payload: Any) -> Dict[str, Balance]:
    balances: Dict[str, Balance] = {}
    for code, item in _as_mapping(payload, "returnCompleteBalances").items():
        balances[code] = Balance(
            available=float(item.get("available", 0.0)),
            on_orders=float(item.get("onOrders", 0.0)),
            btc_value=float(item.get("btcValue", 0.0)),
        )
    return balances


def parse_order_response(payload: Any) -> Order:
    data = _as_mapping(payload, "order")
    trades = [
        OrderTrade(
            trade_id=str(item.get("tradeID", "")),
            type=str(item.get("type", "")),
            rate=float(item.get("rate", 0.0)),
            amount=float(item.get("amount", 0.0)),
            total=float(item.get("total", 0.0)),
            date=str(item.get("date", "")),
        )
        for item in data.get("resultingTrades", [])
    ]
    return Order(order_number=int(data.get("orderNumber", 0)), resulting_trades=trades)

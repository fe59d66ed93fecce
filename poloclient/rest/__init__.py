"""REST access to Poloniex public market data and the signed trading API."""

from .client import PoloniexClient
from .models import (
    Balance,
    Currency,
    Order,
    OrderRequest,
    OrderTrade,
    OrderType,
    Ticker,
    WithdrawRequest,
)

__all__ = [
    "Balance",
    "Currency",
    "Order",
    "OrderRequest",
    "OrderTrade",
    "OrderType",
    "PoloniexClient",
    "Ticker",
    "WithdrawRequest",
]

"""Ticker events delivered by the push feed.

The exchange publishes every ticker update on the ``ticker`` topic as a
positional array::

    [currencyPair, last, lowestAsk, highestBid, percentChange,
     baseVolume, quoteVolume, isFrozen, 24hrHigh, 24hrLow]

Numeric fields arrive as decimal strings and ``isFrozen`` as a number. The
feed carries no timestamp, so :func:`decode_ticker_event` stamps each event
with the wall-clock time of receipt.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from poloclient.core.errors import MalformedEventError
from poloclient.core.time_utils import now_utc
from poloclient.core.types import Symbol, WampArgs

TICKER_FIELD_COUNT = 10

_PRICE_FIELDS = (
    "last",
    "lowest_ask",
    "highest_bid",
    "percent_change",
    "base_volume",
    "quote_volume",
)
_EXTREMA_FIELDS = ("high_24hr", "low_24hr")


@dataclass(frozen=True, slots=True)
class TickerEvent:
    """Immutable ticker snapshot for one currency pair."""

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

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["received_at"] = self.received_at.isoformat()
        return data


def _to_float(name: str, value: Any) -> float:
    # bool is an int subclass; a flag in a price slot means the array is shifted.
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedEventError(f"Field {name!r} must be numeric or a numeric string, got {type(value).__name__}")
    try:
        number = float(value)
    except ValueError as exc:
        raise MalformedEventError(f"Field {name!r} is not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise MalformedEventError(f"Field {name!r} must be finite, got {value!r}")
    return number


def _to_flag(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedEventError(f"Field 'is_frozen' must be 0 or 1, got {value!r}")
    try:
        flag = int(float(value))
    except (ValueError, OverflowError) as exc:
        raise MalformedEventError(f"Field 'is_frozen' is not a number: {value!r}") from exc
    if flag not in (0, 1):
        raise MalformedEventError(f"Field 'is_frozen' must be 0 or 1, got {value!r}")
    return flag


def decode_ticker_event(args: Optional[WampArgs], received_at: Optional[datetime] = None) -> TickerEvent:
    """Validate a positional ticker payload and build a :class:`TickerEvent`.

    Raises :class:`MalformedEventError` when the payload is not a list, has the
    wrong number of fields, or any field has the wrong type.
    """

    if not isinstance(args, (list, tuple)):
        raise MalformedEventError(f"Ticker payload must be a list, got {type(args).__name__}")
    if len(args) != TICKER_FIELD_COUNT:
        raise MalformedEventError(f"Ticker payload must have {TICKER_FIELD_COUNT} fields, got {len(args)}")
    symbol = args[0]
    if not isinstance(symbol, str) or not symbol:
        raise MalformedEventError(f"Ticker symbol must be a non-empty string, got {symbol!r}")

    prices = {name: _to_float(name, value) for name, value in zip(_PRICE_FIELDS, args[1:7])}
    extrema = {name: _to_float(name, value) for name, value in zip(_EXTREMA_FIELDS, args[8:10])}
    return TickerEvent(
        symbol=Symbol(symbol),
        is_frozen=_to_flag(args[7]),
        received_at=received_at or now_utc(),
        **prices,
        **extrema,
    )

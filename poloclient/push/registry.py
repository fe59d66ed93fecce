"""Symbol → sink table for the push engine.

The registry holds no lock of its own: :class:`~poloclient.push.client.PushClient`
calls it only while holding the engine lock, which also guards the
connection state, so "is anyone subscribed" and "is the topic joined" never
disagree.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from poloclient.core.errors import AlreadySubscribedError
from poloclient.core.types import Symbol

from .sinks import TickerSink

LOGGER = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Unique mapping from symbol to its caller-owned sink."""

    def __init__(self) -> None:
        self._subs: Dict[Symbol, TickerSink] = {}

    def add(self, symbol: Symbol, sink: TickerSink) -> None:
        if symbol in self._subs:
            raise AlreadySubscribedError(f"{symbol} is already subscribed")
        self._subs[symbol] = sink

    def remove(self, symbol: Symbol) -> bool:
        """Close and drop the sink for ``symbol``. Returns False if absent."""

        sink = self._subs.pop(symbol, None)
        if sink is None:
            return False
        _close_sink(symbol, sink)
        return True

    def discard(self, symbol: Symbol) -> None:
        """Drop the entry without closing the sink (rollback of a failed add)."""

        self._subs.pop(symbol, None)

    def get(self, symbol: Symbol) -> Optional[TickerSink]:
        return self._subs.get(symbol)

    def close_all(self) -> int:
        """Close every sink and empty the table. Returns the number closed."""

        count = len(self._subs)
        for symbol, sink in list(self._subs.items()):
            _close_sink(symbol, sink)
        self._subs.clear()
        return count

    def symbols(self) -> List[Symbol]:
        return list(self._subs)

    def __len__(self) -> int:
        return len(self._subs)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._subs


def _close_sink(symbol: Symbol, sink: TickerSink) -> None:
    # A faulty caller sink must not leave the registry half-cleared.
    try:
        sink.close()
    except Exception:
        LOGGER.exception("Closing sink failed", extra={"symbol": symbol})

"""Real-time ticker push feed.

:class:`PushClient` owns the shared WAMP session and routes decoded
:class:`TickerEvent` objects to caller-owned sinks such as
:class:`QueueSink`.
"""

from .client import ConnectionState, PushClient, PushStats
from .events import TickerEvent, decode_ticker_event
from .registry import SubscriptionRegistry
from .sinks import QueueSink, TickerSink
from .wamp import WampSession

__all__ = [
    "ConnectionState",
    "PushClient",
    "PushStats",
    "QueueSink",
    "SubscriptionRegistry",
    "TickerEvent",
    "TickerSink",
    "WampSession",
    "decode_ticker_event",
]

"""Top-level package for the Poloniex exchange client.

The package exposes two entry points: :class:`PoloniexClient` for the signed
and public REST calls and :class:`PushClient` for the real-time ticker feed.
Configuration, logging and the shared error hierarchy live in the ``config``,
``telemetry`` and ``core`` subpackages.
"""

from .push import PushClient, QueueSink, TickerEvent
from .rest import PoloniexClient

__all__ = ["PoloniexClient", "PushClient", "QueueSink", "TickerEvent"]

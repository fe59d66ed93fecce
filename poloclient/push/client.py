"""Real-time ticker subscription and dispatch engine.

:class:`PushClient` keeps one shared WAMP session with the exchange's
streaming endpoint and fans ``ticker`` events out to per-symbol sinks owned
by the caller.

Lifecycle::

    push = PushClient()
    sink = QueueSink()
    push.subscribe_ticker("BTC_ETH", sink)   # opens the session on first use
    threading.Thread(target=push.receive).start()
    for event in sink:                       # ends when the sink is closed
        ...
    push.close()                             # closes the session and all sinks

A single lock serializes subscribe, unsubscribe, close and the routing step
of every inbound event. Delivery happens under that lock, so sinks must not
block (see :mod:`.sinks`). Dropped connections are not re-established: when
the session ends, :meth:`receive` returns (or raises :class:`TransportError`)
and the caller decides whether to subscribe again.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from poloclient.config.models import PushConfig
from poloclient.core.errors import (
    AlreadySubscribedError,
    ConnectError,
    MalformedEventError,
    SinkClosedError,
    TransportError,
)
from poloclient.core.types import Symbol

from .events import decode_ticker_event
from .registry import SubscriptionRegistry
from .sinks import QueueSink, TickerSink
from .wamp import EventHandler, WampSession

LOGGER = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    SUBSCRIBED = "subscribed"


class PubSubSession(Protocol):
    """What the engine needs from a pub/sub session (see :class:`WampSession`)."""

    error: Optional[BaseException]

    def open(self) -> None: ...

    def subscribe(self, topic: str, handler: EventHandler) -> int: ...

    def start(self) -> None: ...

    def unsubscribe(self, topic: str) -> None: ...

    def close(self) -> None: ...

    def wait(self, timeout: Optional[float] = None) -> bool: ...


SessionFactory = Callable[[PushConfig], PubSubSession]


def default_session_factory(config: PushConfig) -> PubSubSession:
    return WampSession(config.endpoint, config.realm, timeout=config.connect_timeout)


@dataclass(slots=True)
class PushStats:
    """Dispatch counters, updated under the engine lock."""

    delivered: int = 0
    discarded: int = 0
    malformed: int = 0
    rejected: int = 0


class PushClient:
    """Shared-session ticker feed with per-symbol sinks.

    Parameters
    ----------
    config:
        Endpoint, realm, topic and default sink settings. Defaults to
        :class:`PushConfig` defaults (public Poloniex endpoint).
    session_factory:
        Builds an unopened session for ``config``. Tests inject fakes here.
    """

    def __init__(
        self,
        config: Optional[PushConfig] = None,
        *,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.config = config or PushConfig()
        self._session_factory = session_factory or default_session_factory
        self._session: Optional[PubSubSession] = None
        self._registry = SubscriptionRegistry()
        self._lock = threading.Lock()
        self.stats = PushStats()
        self._rejecting: Set[Symbol] = set()

    @property
    def endpoint(self) -> str:
        return self.config.endpoint

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state_locked()

    def _state_locked(self) -> ConnectionState:
        return ConnectionState.SUBSCRIBED if self._session is not None else ConnectionState.DISCONNECTED

    def subscriptions(self) -> List[Symbol]:
        with self._lock:
            return self._registry.symbols()

    def new_sink(self) -> QueueSink:
        """Build a :class:`QueueSink` with the configured size and overflow policy."""

        return QueueSink(maxsize=self.config.sink_maxsize, overflow_policy=self.config.overflow_policy)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe_ticker(self, symbol: str, sink: TickerSink) -> None:
        """Route ticker events for ``symbol`` to ``sink``.

        The first subscription opens the shared session. Raises
        :class:`AlreadySubscribedError` for a duplicate symbol and
        :class:`ConnectError` when the session cannot be established; in both
        cases nothing changes.
        """

        key = Symbol(symbol)
        with self._lock:
            self._registry.add(key, sink)
            if self._session is not None:
                LOGGER.info("Ticker subscribed", extra={"symbol": key})
                return
            try:
                self._join()
            except BaseException:
                self._registry.discard(key)
                raise
            LOGGER.info("Ticker subscribed", extra={"symbol": key})

    def unsubscribe_ticker(self, symbol: str) -> None:
        """Stop routing ``symbol`` and close its sink. Unknown symbols are a no-op.

        Removing the last subscription leaves the topic and closes the
        session, which also ends any outstanding :meth:`receive`.
        """

        key = Symbol(symbol)
        with self._lock:
            if not self._registry.remove(key):
                return
            self._rejecting.discard(key)
            LOGGER.info("Ticker unsubscribed", extra={"symbol": key})
            if self._session is not None and len(self._registry) == 0:
                session, self._session = self._session, None
                session.unsubscribe(self.config.topic)
                session.close()
                LOGGER.info("Last ticker unsubscribed, session closed", extra={"endpoint": self.endpoint})

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def receive(self) -> None:
        """Block until the current session ends.

        Returns immediately when no session is active. When the peer ends the
        session (``GOODBYE``, dropped socket) the engine is torn down as by
        :meth:`close`, so every sink observes the end of the feed. Raises
        :class:`TransportError` if the session died abnormally.
        """

        with self._lock:
            session = self._session
        if session is None:
            return
        session.wait()
        with self._lock:
            if self._session is session:
                self._session = None
                closed = self._registry.close_all()
                self._rejecting.clear()
                LOGGER.warning(
                    "Push session ended by peer",
                    extra={"endpoint": self.endpoint, "sinks_closed": closed},
                )
        if session.error is not None:
            raise TransportError(f"Streaming session failed: {session.error}") from session.error

    def close(self) -> None:
        """Close the session and every remaining sink. Idempotent."""

        with self._lock:
            if self._session is None:
                return
            session, self._session = self._session, None
            session.close()
            closed = self._registry.close_all()
            self._rejecting.clear()
            LOGGER.info("Push client closed", extra={"endpoint": self.endpoint, "sinks_closed": closed})

    def __enter__(self) -> "PushClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Connection manager / dispatcher
    # ------------------------------------------------------------------
    def _join(self) -> None:
        """Open the session, join the realm and subscribe the ticker topic.

        Caller holds the lock.
        """

        if self._session is not None:
            raise AlreadySubscribedError("Ticker topic is already joined")
        session = self._session_factory(self.config)
        try:
            session.open()
            session.subscribe(self.config.topic, self._on_ticker)
            session.start()
        except (AlreadySubscribedError, ConnectError):
            session.close()
            raise
        except Exception as exc:
            session.close()
            raise ConnectError(f"Cannot join {self.config.topic!r} on {self.endpoint}: {exc}") from exc
        self._session = session
        LOGGER.info("Push session open", extra={"endpoint": self.endpoint, "topic": self.config.topic})

    def _on_ticker(self, args: List[Any], kwargs: Dict[str, Any]) -> None:
        """Decode one inbound event and deliver it to the matching sink.

        Runs on the session's reader thread and never raises into it.
        """

        try:
            self._dispatch(args)
        except Exception:
            LOGGER.exception("Ticker dispatch failed", extra={"payload": repr(args)[:200]})

    def _dispatch(self, args: List[Any]) -> None:
        try:
            event = decode_ticker_event(args)
        except MalformedEventError as exc:
            with self._lock:
                self.stats.malformed += 1
            LOGGER.warning("Dropping malformed ticker event: %s", exc, extra={"payload": repr(args)[:200]})
            return

        with self._lock:
            sink = self._registry.get(event.symbol)
            if sink is None:
                self.stats.discarded += 1
                return
            try:
                sink.send(event)
            except SinkClosedError:
                self.stats.rejected += 1
                if event.symbol not in self._rejecting:
                    self._rejecting.add(event.symbol)
                    LOGGER.warning("Sink for %s is closed, dropping its events until unsubscribed", event.symbol)
                return
            except Exception:
                self.stats.rejected += 1
                LOGGER.exception("Sink rejected ticker event", extra={"symbol": event.symbol})
                return
            self.stats.delivered += 1

"""Minimal WAMP v2 subscriber session over ``websocket-client``.

Only the subscriber role is implemented: join a realm, subscribe to topics,
receive ``EVENT`` messages and leave. Messages use the ``wamp.2.json``
serialization, i.e. each websocket frame is a JSON array whose first element
is the message code.

The handshake (``HELLO``/``WELCOME``) and topic subscription
(``SUBSCRIBE``/``SUBSCRIBED``) run synchronously on the caller's thread.
:meth:`WampSession.start` then hands the socket to a daemon reader thread
that invokes the topic handlers in arrival order until the peer says
``GOODBYE``, the socket closes or an error occurs.
"""
from __future__ import annotations

import itertools
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

import websocket

from poloclient.core.errors import AlreadySubscribedError, ConnectError

LOGGER = logging.getLogger(__name__)

WAMP_SUBPROTOCOL = "wamp.2.json"

HELLO = 1
WELCOME = 2
ABORT = 3
GOODBYE = 6
ERROR = 8
SUBSCRIBE = 32
SUBSCRIBED = 33
UNSUBSCRIBE = 34
UNSUBSCRIBED = 35
EVENT = 36

CLOSE_NORMAL = "wamp.close.normal"

EventHandler = Callable[[List[Any], Dict[str, Any]], None]
SocketFactory = Callable[[], Any]


class WampSession:
    """Blocking WAMP session with a background event reader.

    Parameters
    ----------
    url:
        Streaming endpoint, e.g. ``wss://api.poloniex.com:443``.
    realm:
        Realm joined right after the websocket handshake.
    timeout:
        Seconds to wait for ``WELCOME`` and ``SUBSCRIBED`` replies.
    socket_factory:
        Returns an unconnected websocket; defaults to
        :class:`websocket.WebSocket`. Tests inject a fake here.
    """

    def __init__(
        self,
        url: str,
        realm: str,
        *,
        timeout: float = 10.0,
        socket_factory: Optional[SocketFactory] = None,
    ) -> None:
        self.url = url
        self.realm = realm
        self.timeout = timeout
        self.session_id: Optional[int] = None
        self._socket_factory = socket_factory or websocket.WebSocket
        self._socket: Any = None
        self._request_ids = itertools.count(1)
        self._topics: Dict[str, int] = {}
        self._handlers: Dict[int, EventHandler] = {}
        self._reader: Optional[threading.Thread] = None
        self._closing = threading.Event()
        self._done = threading.Event()
        self.error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Handshake / subscription (caller thread)
    # ------------------------------------------------------------------
    def open(self) -> None:
        """Connect the websocket and join the realm."""

        try:
            self._socket = self._socket_factory()
            self._socket.connect(self.url, subprotocols=[WAMP_SUBPROTOCOL], timeout=self.timeout)
            self._send([HELLO, self.realm, {"roles": {"subscriber": {}}}])
            reply = self._recv()
        except (websocket.WebSocketException, OSError, ValueError) as exc:
            self._abandon()
            raise ConnectError(f"Cannot connect to {self.url}: {exc}") from exc

        code = reply[0] if reply else None
        if code == WELCOME:
            self.session_id = reply[1]
            LOGGER.info("WAMP session joined", extra={"realm": self.realm, "session_id": self.session_id})
            return
        self._abandon()
        if code == ABORT:
            reason = reply[2] if len(reply) > 2 else "unknown"
            raise ConnectError(f"Realm {self.realm!r} join aborted: {reason}")
        raise ConnectError(f"Unexpected reply to HELLO: {reply!r}")

    def subscribe(self, topic: str, handler: EventHandler) -> int:
        """Subscribe ``handler`` to ``topic`` and return the subscription id.

        Must be called before :meth:`start`, while the caller still owns the
        socket's receive side.
        """

        if topic in self._topics:
            raise AlreadySubscribedError(f"Topic {topic!r} is already subscribed")
        if self._socket is None:
            raise ConnectError("WAMP session is not open")
        if self._reader is not None:
            raise RuntimeError("subscribe() must be called before start()")

        request_id = next(self._request_ids)
        try:
            self._send([SUBSCRIBE, request_id, {}, topic])
            while True:
                reply = self._recv()
                code = reply[0] if reply else None
                if code == SUBSCRIBED and reply[1] == request_id:
                    break
                if code == ERROR and reply[1] == SUBSCRIBE and reply[2] == request_id:
                    raise ConnectError(f"Subscribe to {topic!r} rejected: {reply[4]}")
                if code in (ABORT, GOODBYE):
                    raise ConnectError(f"Session ended while subscribing to {topic!r}: {reply!r}")
                LOGGER.debug("Ignoring message while subscribing", extra={"code": code})
        except (websocket.WebSocketException, OSError, ValueError) as exc:
            raise ConnectError(f"Subscribe to {topic!r} failed: {exc}") from exc

        subscription_id = reply[2]
        self._topics[topic] = subscription_id
        self._handlers[subscription_id] = handler
        LOGGER.info("Subscribed to topic", extra={"topic": topic, "subscription_id": subscription_id})
        return subscription_id

    def start(self) -> None:
        """Start the background reader that dispatches events."""

        if self._reader is not None:
            return
        self._reader = threading.Thread(target=self._read_loop, name="wamp-reader", daemon=True)
        self._reader.start()

    def unsubscribe(self, topic: str) -> None:
        """Leave ``topic``. The ``UNSUBSCRIBED`` reply is not awaited."""

        subscription_id = self._topics.pop(topic, None)
        if subscription_id is None:
            return
        self._handlers.pop(subscription_id, None)
        try:
            self._send([UNSUBSCRIBE, next(self._request_ids), subscription_id])
        except (websocket.WebSocketException, OSError) as exc:
            LOGGER.warning("Unsubscribe from %s failed: %s", topic, exc)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Say ``GOODBYE``, close the socket and mark the session done.

        Does not join the reader thread: the reader may itself be waiting on a
        lock held by the caller.
        """

        if self._closing.is_set():
            return
        self._closing.set()
        if self._socket is not None:
            try:
                self._send([GOODBYE, {}, CLOSE_NORMAL])
            except (websocket.WebSocketException, OSError) as exc:
                LOGGER.debug("GOODBYE not sent: %s", exc)
        self._abandon()
        LOGGER.info("WAMP session closed", extra={"session_id": self.session_id})

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the session is done. Returns False on timeout."""

        return self._done.wait(timeout)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def topics(self) -> List[str]:
        return list(self._topics)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _send(self, message: List[Any]) -> None:
        self._socket.send(json.dumps(message))

    def _recv(self) -> List[Any]:
        raw = self._socket.recv()
        if not raw:
            raise websocket.WebSocketConnectionClosedException("Connection closed by peer")
        message = json.loads(raw)
        if not isinstance(message, list) or not message:
            raise ValueError(f"Malformed WAMP message: {raw!r}")
        return message

    def _abandon(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except (websocket.WebSocketException, OSError) as exc:
                LOGGER.debug("Socket close failed: %s", exc)
        self._done.set()

    def _read_loop(self) -> None:
        try:
            self._socket.settimeout(None)
            while not self._closing.is_set():
                message = self._recv()
                code = message[0]
                if code == EVENT:
                    self._dispatch(message)
                elif code == GOODBYE:
                    LOGGER.info("Peer ended WAMP session", extra={"reason": message[2] if len(message) > 2 else None})
                    if not self._closing.is_set():
                        self._send([GOODBYE, {}, "wamp.close.goodbye_and_out"])
                    break
                elif code == ABORT:
                    raise ConnectionError(f"Session aborted by peer: {message!r}")
                elif code in (UNSUBSCRIBED, ERROR):
                    LOGGER.debug("WAMP reply", extra={"code": code})
        except (websocket.WebSocketException, OSError, ValueError) as exc:
            if not self._closing.is_set():
                LOGGER.error("WAMP reader stopped: %s", exc)
                self.error = exc
        except Exception as exc:
            LOGGER.exception("WAMP reader crashed")
            self.error = exc
        finally:
            self._abandon()

    def _dispatch(self, message: List[Any]) -> None:
        subscription_id = message[1]
        handler = self._handlers.get(subscription_id)
        if handler is None:
            return
        args = message[4] if len(message) > 4 and isinstance(message[4], list) else []
        kwargs: Mapping[str, Any] = message[5] if len(message) > 5 and isinstance(message[5], dict) else {}
        handler(args, dict(kwargs))

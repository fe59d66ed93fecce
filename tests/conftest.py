from __future__ import annotations

import json
import queue
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest

from poloclient.config.models import ApiCredentialsConfig, ClientConfig, PushConfig, RestConfig
from poloclient.core.errors import AlreadySubscribedError, ConnectError
from poloclient.push.client import PushClient

TICKER_ARGS: List[Any] = ["BTC_LTC", "250.5", "250.6", "250.4", "0.015", "1000", "4", 0, "260", "240"]


def ticker_args(symbol: str = "BTC_LTC", last: str = "250.5") -> List[Any]:
    args = list(TICKER_ARGS)
    args[0] = symbol
    args[1] = last
    return args


class FakeSession:
    """In-memory pub/sub session: tests push events through ``emit``."""

    def __init__(self, config: PushConfig, *, fail_on: Optional[str] = None) -> None:
        self.config = config
        self.fail_on = fail_on
        self.opened = False
        self.started = False
        self.closed = False
        self.handlers: Dict[str, Callable[[List[Any], Dict[str, Any]], None]] = {}
        self.unsubscribed: List[str] = []
        self.error: Optional[BaseException] = None
        self._done = threading.Event()

    def open(self) -> None:
        if self.fail_on == "open":
            raise ConnectError("connection refused")
        self.opened = True

    def subscribe(self, topic: str, handler) -> int:
        if self.fail_on == "subscribe":
            raise ConnectError("subscribe rejected")
        if topic in self.handlers:
            raise AlreadySubscribedError(topic)
        self.handlers[topic] = handler
        return 1

    def start(self) -> None:
        self.started = True

    def unsubscribe(self, topic: str) -> None:
        self.handlers.pop(topic, None)
        self.unsubscribed.append(topic)

    def close(self) -> None:
        self.closed = True
        self._done.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def emit(self, args: List[Any], topic: str = "ticker") -> None:
        self.handlers[topic](args, {})

    def fail(self, exc: BaseException) -> None:
        self.error = exc
        self._done.set()

    def drop(self) -> None:
        self._done.set()


class FakeSessionFactory:
    def __init__(self) -> None:
        self.sessions: List[FakeSession] = []
        self.fail_on: Optional[str] = None

    def __call__(self, config: PushConfig) -> FakeSession:
        session = FakeSession(config, fail_on=self.fail_on)
        self.sessions.append(session)
        return session

    @property
    def last(self) -> FakeSession:
        return self.sessions[-1]


@pytest.fixture
def make_ticker_args() -> Callable[..., List[Any]]:
    return ticker_args


@pytest.fixture
def fake_socket_factory() -> Callable[..., FakeWebSocket]:
    def _factory(replies: Optional[List[Any]] = None) -> FakeWebSocket:
        return FakeWebSocket(replies)

    return _factory


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def push_client(session_factory: FakeSessionFactory) -> Iterator[PushClient]:
    client = PushClient(PushConfig(sink_maxsize=16), session_factory=session_factory)
    yield client
    client.close()


class FakeWebSocket:
    """Scripted stand-in for ``websocket.WebSocket``.

    ``replies`` feeds ``recv``; an empty string simulates the peer closing the
    connection. Sent frames are decoded into ``sent``.
    """

    def __init__(self, replies: Optional[List[Any]] = None) -> None:
        self.url: Optional[str] = None
        self.options: Dict[str, Any] = {}
        self.sent: List[Any] = []
        self.closed = False
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        for reply in replies or []:
            self.feed(reply)

    def feed(self, message: Any) -> None:
        self._inbox.put(message if isinstance(message, (str, BaseException)) else json.dumps(message))

    def connect(self, url: str, **options: Any) -> None:
        self.url = url
        self.options = options

    def send(self, payload: str) -> None:
        self.sent.append(json.loads(payload))

    def recv(self) -> str:
        item = self._inbox.get(timeout=5)
        if isinstance(item, BaseException):
            raise item
        return item

    def settimeout(self, timeout: Optional[float]) -> None:
        pass

    def close(self) -> None:
        self.closed = True
        # Unblock a reader waiting in recv, like a real socket close does.
        self._inbox.put("")


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        credentials=ApiCredentialsConfig(api_key="TEST-KEY", api_secret="TEST-SECRET"),
        rest=RestConfig(endpoint="https://poloniex.test/"),
    )


@pytest.fixture
def fake_session_class() -> type:
    return FakeSession

"""Subscriber sinks receiving ticker events for one symbol.

Sinks are owned by the caller. The push engine only calls :meth:`send` and
:meth:`close` on them, and does so while holding its lock, so ``send`` must
never block. :class:`QueueSink` satisfies that with a bounded buffer and an
explicit overflow policy.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Deque, Iterator, Optional, Protocol, runtime_checkable

from poloclient.config.models import OverflowPolicy
from poloclient.core.errors import SinkClosedError

from .events import TickerEvent

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class TickerSink(Protocol):
    """Capability the engine needs from a subscriber."""

    def send(self, event: TickerEvent) -> None:
        """Accept one event without blocking."""

    def close(self) -> None:
        """Signal that no further events will be sent."""


class QueueSink:
    """Bounded, thread-safe sink with non-blocking ``send``.

    When the buffer is full, ``DROP_OLDEST`` evicts the oldest queued event to
    make room and ``DROP_NEWEST`` discards the incoming event. Either way
    ``dropped`` is incremented. Consumers read with :meth:`get` or by
    iterating; both stop once the sink is closed and drained.
    """

    def __init__(
        self,
        maxsize: int = 1024,
        overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
    ) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.maxsize = maxsize
        self.overflow_policy = OverflowPolicy(overflow_policy)
        self._buffer: Deque[TickerEvent] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, event: TickerEvent) -> None:
        with self._cond:
            if self._closed:
                raise SinkClosedError(f"Sink for {event.symbol} is closed")
            if len(self._buffer) >= self.maxsize:
                self.dropped += 1
                if self.overflow_policy is OverflowPolicy.DROP_NEWEST:
                    LOGGER.debug("Sink full, dropping newest event", extra={"symbol": event.symbol})
                    return
                self._buffer.popleft()
                LOGGER.debug("Sink full, dropping oldest event", extra={"symbol": event.symbol})
            self._buffer.append(event)
            self._cond.notify()

    def get(self, timeout: Optional[float] = None) -> TickerEvent:
        """Return the next event, blocking up to ``timeout`` seconds.

        Raises :class:`TimeoutError` when nothing arrives in time and
        :class:`SinkClosedError` once the sink is closed and drained.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._buffer:
                if self._closed:
                    raise SinkClosedError("Sink is closed")
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise TimeoutError("No ticker event received before timeout")
                self._cond.wait(remaining)
            return self._buffer.popleft()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[TickerEvent]:
        while True:
            try:
                yield self.get()
            except SinkClosedError:
                return

    def __len__(self) -> int:
        with self._cond:
            return len(self._buffer)

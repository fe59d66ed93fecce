from __future__ import annotations

import threading

import pytest

from poloclient.config.models import OverflowPolicy
from poloclient.core.errors import SinkClosedError
from poloclient.push.events import decode_ticker_event
from poloclient.push.sinks import QueueSink, TickerSink


def _event(last: str, make_ticker_args):
    return decode_ticker_event(make_ticker_args(last=last))


def test_queue_sink_should_deliver_in_order(make_ticker_args) -> None:
    sink = QueueSink(maxsize=4)
    for last in ("1", "2", "3"):
        sink.send(_event(last, make_ticker_args))
    assert [sink.get(timeout=1).last for _ in range(3)] == [1.0, 2.0, 3.0]


def test_queue_sink_should_drop_oldest_when_full(make_ticker_args) -> None:
    sink = QueueSink(maxsize=2, overflow_policy=OverflowPolicy.DROP_OLDEST)
    for last in ("1", "2", "3"):
        sink.send(_event(last, make_ticker_args))
    assert sink.dropped == 1
    assert [sink.get(timeout=1).last for _ in range(2)] == [2.0, 3.0]


def test_queue_sink_should_drop_newest_when_full(make_ticker_args) -> None:
    sink = QueueSink(maxsize=2, overflow_policy=OverflowPolicy.DROP_NEWEST)
    for last in ("1", "2", "3"):
        sink.send(_event(last, make_ticker_args))
    assert sink.dropped == 1
    assert [sink.get(timeout=1).last for _ in range(2)] == [1.0, 2.0]


def test_queue_sink_send_should_not_block_when_consumer_stalls(make_ticker_args) -> None:
    sink = QueueSink(maxsize=1)
    done = threading.Event()

    def _producer() -> None:
        for _ in range(100):
            sink.send(_event("1", make_ticker_args))
        done.set()

    threading.Thread(target=_producer).start()
    assert done.wait(2)
    assert len(sink) == 1
    assert sink.dropped == 99


def test_queue_sink_iteration_should_stop_after_close_and_drain(make_ticker_args) -> None:
    sink = QueueSink()
    sink.send(_event("1", make_ticker_args))
    sink.close()
    assert sink.closed is True
    assert [event.last for event in sink] == [1.0]
    with pytest.raises(SinkClosedError):
        sink.get(timeout=0.1)


def test_queue_sink_should_reject_send_after_close(make_ticker_args) -> None:
    sink = QueueSink()
    sink.close()
    sink.close()
    with pytest.raises(SinkClosedError):
        sink.send(_event("1", make_ticker_args))


def test_queue_sink_get_should_time_out() -> None:
    sink = QueueSink()
    with pytest.raises(TimeoutError):
        sink.get(timeout=0.05)


def test_queue_sink_close_should_wake_blocked_reader() -> None:
    sink = QueueSink()
    outcome: list[str] = []

    def _reader() -> None:
        try:
            sink.get()
        except SinkClosedError:
            outcome.append("closed")

    reader = threading.Thread(target=_reader)
    reader.start()
    sink.close()
    reader.join(2)
    assert outcome == ["closed"]


def test_queue_sink_should_satisfy_sink_protocol() -> None:
    assert isinstance(QueueSink(), TickerSink)
    with pytest.raises(ValueError):
        QueueSink(maxsize=0)

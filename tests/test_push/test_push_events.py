from __future__ import annotations

from datetime import datetime, timezone

import pytest

from poloclient.core.errors import MalformedEventError
from poloclient.push.events import decode_ticker_event

TICKER_ARGS = ["BTC_LTC", "250.5", "250.6", "250.4", "0.015", "1000", "4", 0, "260", "240"]


def test_decode_ticker_event_should_map_positional_fields() -> None:
    event = decode_ticker_event(["BTC_LTC", "250.5", "250.6", "250.4", "0.015", "1000", "4", "0", "260", "240"])
    assert event.symbol == "BTC_LTC"
    assert event.last == 250.5
    assert event.lowest_ask == 250.6
    assert event.highest_bid == 250.4
    assert event.percent_change == 0.015
    assert event.base_volume == 1000
    assert event.quote_volume == 4
    assert event.is_frozen == 0
    assert event.high_24hr == 260
    assert event.low_24hr == 240
    assert event.received_at.tzinfo is not None
    assert event.received_at.timestamp() > 0


def test_decode_ticker_event_should_accept_numeric_frozen_flag() -> None:
    args = list(TICKER_ARGS)
    args[7] = 1
    assert decode_ticker_event(args).is_frozen == 1


def test_decode_ticker_event_should_use_given_receipt_time() -> None:
    stamp = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    event = decode_ticker_event(TICKER_ARGS, received_at=stamp)
    assert event.received_at == stamp
    assert event.to_dict()["received_at"] == stamp.isoformat()


def test_ticker_event_should_be_immutable() -> None:
    event = decode_ticker_event(TICKER_ARGS)
    with pytest.raises(AttributeError):
        event.last = 1.0  # type: ignore[misc]


@pytest.mark.parametrize(
    "args",
    [
        None,
        {"symbol": "BTC_LTC"},
        TICKER_ARGS[:9],
        TICKER_ARGS + ["extra"],
        [42] + TICKER_ARGS[1:],
        ["BTC_LTC", "abc"] + TICKER_ARGS[2:],
        ["BTC_LTC", None] + TICKER_ARGS[2:],
        TICKER_ARGS[:7] + [True] + TICKER_ARGS[8:],
        TICKER_ARGS[:7] + [5] + TICKER_ARGS[8:],
        TICKER_ARGS[:7] + ["inf"] + TICKER_ARGS[8:],
        TICKER_ARGS[:7] + [float("inf")] + TICKER_ARGS[8:],
        TICKER_ARGS[:7] + ["nan"] + TICKER_ARGS[8:],
        ["BTC_LTC", "inf"] + TICKER_ARGS[2:],
        ["BTC_LTC", "250.5", "nan"] + TICKER_ARGS[3:],
        TICKER_ARGS[:8] + [float("-inf"), "240"],
    ],
)
def test_decode_ticker_event_should_reject_malformed_payload(args) -> None:
    with pytest.raises(MalformedEventError):
        decode_ticker_event(args)

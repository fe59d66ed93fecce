"""Utilities for dealing with timestamps.

Ticker events carry no exchange time, so the push engine stamps them on
receipt; nonces for private REST calls are derived from the wall clock in
nanoseconds. Both go through the helpers below.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current UTC datetime with tzinfo."""

    return datetime.now(timezone.utc)


def now_ns() -> int:
    """Return the current wall-clock time as integer nanoseconds since the epoch."""

    return time.time_ns()

"""Shared type aliases for readability and contract enforcement."""
from __future__ import annotations

from typing import Any, NewType, Sequence, TypeAlias

Symbol = NewType("Symbol", str)
Nonce = NewType("Nonce", int)

WampArgs: TypeAlias = Sequence[Any]

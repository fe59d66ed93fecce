"""Error hierarchy shared by the client subsystems.

REST failures surface as :class:`ApiError`; everything raised by the push
engine derives from :class:`PushError` so callers can handle the streaming
side with a single ``except`` clause. Submodules should raise the most
specific error available.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional


class PoloniexError(Exception):
    """Base class for all custom exceptions in the library."""


class ConfigurationError(PoloniexError):
    """Raised when configuration files are missing or invalid."""


class ApiError(PoloniexError):
    """Raised when a REST call fails or the exchange reports an ``error``."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class PushError(PoloniexError):
    """Base class for failures of the ticker push engine."""


class AlreadySubscribedError(PushError):
    """Raised on a duplicate symbol subscription or a duplicate topic join."""


class ConnectError(PushError):
    """Raised when the streaming session, realm or topic cannot be joined."""


class MalformedEventError(PushError):
    """Raised when an inbound ticker event cannot be decoded."""


class TransportError(PushError):
    """Raised from ``receive`` when the streaming session dies abnormally."""


class SinkClosedError(PushError):
    """Raised when reading from or writing to a sink that has been closed."""

"""Configuration loading and validation package."""

from .loader import load_client_config, load_secrets_config
from .models import (
    ApiCredentialsConfig,
    ClientConfig,
    OverflowPolicy,
    PushConfig,
    RestConfig,
    TelemetryConfig,
)

__all__ = [
    "ApiCredentialsConfig",
    "ClientConfig",
    "OverflowPolicy",
    "PushConfig",
    "RestConfig",
    "TelemetryConfig",
    "load_client_config",
    "load_secrets_config",
]

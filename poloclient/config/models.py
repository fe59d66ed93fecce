"""Typed configuration models for the Poloniex client.

The config subsystem relies on pydantic to validate YAML files and to
provide strongly-typed objects to the REST client and the push engine.
Every section has defaults, so an empty file yields a usable public-only
configuration.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

DEFAULT_REST_ENDPOINT = "https://poloniex.com/"
DEFAULT_PUSH_ENDPOINT = "wss://api.poloniex.com:443"
DEFAULT_REALM = "realm1"
DEFAULT_TICKER_TOPIC = "ticker"


class OverflowPolicy(str, Enum):
    """What a bounded sink discards when a consumer falls behind."""

    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"


class ApiCredentialsConfig(BaseModel):
    """API key/secret pair used to sign private REST calls.

    Both values may be empty when only the public endpoints and the push feed
    are needed.
    """

    api_key: str = ""
    api_secret: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


class RestConfig(BaseModel):
    """REST endpoint and per-request timeout."""

    endpoint: str = Field(DEFAULT_REST_ENDPOINT, min_length=1)
    timeout: float = Field(10.0, gt=0)


class PushConfig(BaseModel):
    """Streaming endpoint, WAMP realm/topic and sink backpressure settings."""

    endpoint: str = Field(DEFAULT_PUSH_ENDPOINT, min_length=1)
    realm: str = Field(DEFAULT_REALM, min_length=1)
    topic: str = Field(DEFAULT_TICKER_TOPIC, min_length=1)
    connect_timeout: float = Field(10.0, gt=0)
    sink_maxsize: PositiveInt = 1024
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST


class TelemetryConfig(BaseModel):
    """Logging switches."""

    log_level: str = Field("INFO")
    log_dir: Optional[str] = None


class ClientConfig(BaseModel):
    """Top-level config combining credentials, REST, push and telemetry."""

    credentials: ApiCredentialsConfig = Field(default_factory=ApiCredentialsConfig)
    rest: RestConfig = Field(default_factory=RestConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

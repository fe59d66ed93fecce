"""YAML loaders for the config subsystem.

Each helper consumes one YAML file, validates it via models.py and returns
typed objects to the caller. Validation failures are re-raised as
:class:`ConfigurationError` so callers do not need to know about pydantic.
"""
from __future__ import annotations

from pathlib import Path
from typing import Mapping, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from poloclient.core.errors import ConfigurationError

from .models import ApiCredentialsConfig, ClientConfig

_DEFAULT_CONFIG_DIR = Path("config")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _read_yaml(path: Path) -> Mapping:
    """Read a YAML file and return a mapping (empty dict if file is blank)."""

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"YAML root must be a mapping in {path}")
    return data


def _validate(model: Type[ModelT], data: Mapping, path: Path) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config in {path}: {exc}") from exc


def load_client_config(path: Path | str = _DEFAULT_CONFIG_DIR / "client.yml") -> ClientConfig:
    """Load client.yml (credentials, rest, push and telemetry sections).

    Missing sections fall back to the defaults in :mod:`.models`.
    """

    path = Path(path)
    return _validate(ClientConfig, _read_yaml(path), path)


def load_secrets_config(path: Path | str = _DEFAULT_CONFIG_DIR / "secrets.yaml") -> ApiCredentialsConfig:
    """Load secrets.yaml (``api_key`` / ``api_secret``).

    In production setups the file is gitignored; for tests it can point to a
    fixture.
    """

    path = Path(path)
    return _validate(ApiCredentialsConfig, _read_yaml(path), path)

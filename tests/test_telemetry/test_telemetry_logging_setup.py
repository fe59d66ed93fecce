from __future__ import annotations

import json
import logging

import pytest

from poloclient.config.models import TelemetryConfig
from poloclient.telemetry.logging_setup import JsonFormatter, configure_logging, configure_logging_from_config


@pytest.fixture
def restore_library_logger():
    logger = logging.getLogger("poloclient")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def test_json_formatter_should_include_extras() -> None:
    record = logging.LogRecord("poloclient.push", logging.WARNING, __file__, 1, "dropped %s", ("BTC_LTC",), None)
    record.symbol = "BTC_LTC"
    record.unserializable = object()
    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "dropped BTC_LTC"
    assert payload["level"] == "WARNING"
    assert payload["symbol"] == "BTC_LTC"
    assert "unserializable" not in payload
    assert "args" not in payload


def test_configure_logging_should_write_json_lines(tmp_path, restore_library_logger) -> None:
    logger = configure_logging(level="debug", log_dir=tmp_path / "logs")
    logging.getLogger("poloclient.push.client").info("Push session open", extra={"endpoint": "wss://x"})
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "logs" / "poloclient.jsonl").read_text(encoding="utf-8").strip().splitlines()
    entries = [json.loads(line) for line in lines]
    assert entries[-1]["message"] == "Push session open"
    assert entries[-1]["endpoint"] == "wss://x"
    assert logger.propagate is False
    assert logger.level == logging.DEBUG


def test_configure_logging_without_dir_should_only_stream(restore_library_logger) -> None:
    logger = configure_logging()
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)


def test_configure_logging_from_config_should_honor_telemetry_section(tmp_path, restore_library_logger) -> None:
    logger = configure_logging_from_config(TelemetryConfig(log_level="WARNING", log_dir=str(tmp_path)))
    assert logger.level == logging.WARNING
    assert (tmp_path / "poloclient.jsonl").exists()

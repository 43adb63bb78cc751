from __future__ import annotations

import json
import logging
from pathlib import Path

from metricscope.logs import LOGGER_NAME, JsonFormatter, configure_logging


def test_json_formatter_fields() -> None:
    record = logging.LogRecord(LOGGER_NAME, logging.WARNING, __file__, 1, "span %s missing", ("abc",), None)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == LOGGER_NAME
    assert payload["msg"] == "span abc missing"
    assert "ts" in payload


def test_configure_logging_writes_json_file(tmp_path: Path) -> None:
    log_file = tmp_path / "dash.log"
    logger = configure_logging(use_json=True, log_file=str(log_file), console=False, level="DEBUG")
    try:
        logging.getLogger(f"{LOGGER_NAME}.charts").debug("hello %d", 3)
        for handler in logger.handlers:
            handler.flush()
        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["msg"] == "hello 3"
        assert not any(type(handler) is logging.StreamHandler for handler in logger.handlers)
    finally:
        configure_logging(console=False)


def test_configure_logging_without_outputs_is_silent() -> None:
    logger = configure_logging(console=False)

    assert [type(handler) for handler in logger.handlers] == [logging.NullHandler]
    assert logger.propagate is False


def test_configure_logging_replaces_handlers() -> None:
    configure_logging()
    logger = configure_logging()
    try:
        assert len(logger.handlers) == 1
    finally:
        configure_logging(console=False)

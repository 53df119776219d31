"""
Unit tests for logging setup and event loggers
"""

import json
import logging
from unittest.mock import Mock

import pytest

from core.logging import (
    JsonEventLogger,
    TextEventLogger,
    build_event_logger,
    setup_logging,
)


class TestTextEventLogger:

    def test_renders_fields(self, caplog):
        logger = TextEventLogger(logging.getLogger("test.text"))

        with caplog.at_level(logging.INFO, logger="test.text"):
            logger.info("Fetched followers", {"count": 3, "cursor": "c1"})
            logger.error("Fetch attempt failed")

        assert caplog.records[0].getMessage() == "Fetched followers count=3 cursor=c1"
        assert caplog.records[0].levelno == logging.INFO
        assert caplog.records[1].getMessage() == "Fetch attempt failed"
        assert caplog.records[1].levelno == logging.ERROR


class TestJsonEventLogger:

    def test_passes_fields_as_keywords(self):
        wrapped = Mock()
        logger = JsonEventLogger(logger=wrapped)

        logger.info("Fetched followers", {"count": 3})
        logger.error("Ingestion failed")

        wrapped.info.assert_called_once_with("Fetched followers", count=3)
        wrapped.error.assert_called_once_with("Ingestion failed")

    def test_renders_json_lines(self, caplog):
        logger = JsonEventLogger(name="test.json")

        with caplog.at_level(logging.INFO, logger="test.json"):
            logger.info("Updating cursor", {"new_cursor": "c2"})

        payload = json.loads(caplog.records[0].getMessage())
        assert payload["event"] == "Updating cursor"
        assert payload["new_cursor"] == "c2"
        assert payload["level"] == "info"
        assert "timestamp" in payload


class TestBuildEventLogger:

    def test_selects_variant(self):
        assert isinstance(build_event_logger("text"), TextEventLogger)
        assert isinstance(build_event_logger("JSON"), JsonEventLogger)

    def test_rejects_unknown_format(self):
        with pytest.raises(ValueError):
            build_event_logger("xml")


def test_setup_logging_sets_level():
    setup_logging(level="DEBUG", log_format="text")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    setup_logging(level="INFO", log_format="json")
    assert logging.getLogger().level == logging.INFO

"""Tests for structlog setup.

Tests verify:
- Context bound through structlog.contextvars is merged into every event
- Third-party loggers are capped at WARNING
"""

import json
import logging

import pytest
import structlog

from circulation.logging import get_logger, setup_logging


@pytest.fixture
def json_logging(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "json")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    setup_logging("INFO")
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    def test_bound_batch_range_is_rendered(self, json_logging, capsys) -> None:
        structlog.contextvars.bind_contextvars(batch_start=100, batch_end=104)
        get_logger("circulation.tests").info("snapshot_fetching", block_height=102)

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["event"] == "snapshot_fetching"
        assert event["batch_start"] == 100
        assert event["batch_end"] == 104
        assert event["block_height"] == 102

    def test_third_party_loggers_capped(self, json_logging) -> None:
        assert logging.getLogger("web3").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert logging.getLogger().level == logging.INFO

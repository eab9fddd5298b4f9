"""Tests for structured logging setup."""

from __future__ import annotations

import io
import json
import logging
from datetime import datetime, timezone

import pytest
import structlog

from candle_core.backtest.engine import MatchingEngine
from candle_core.backtest.ledger import PortfolioLedger
from candle_core.logging import bind_market, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


class TestSetupLogging:
    def test_json_format(self, capsys):
        setup_logging(level="INFO", log_format="json")
        logger = get_logger("test_json")
        logger.info("test message", asset="BTC")

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip())
        assert line["event"] == "test message"
        assert line["asset"] == "BTC"
        assert line["level"] == "info"
        assert "timestamp" in line

    def test_console_format(self, capsys):
        setup_logging(level="INFO", log_format="console")
        logger = get_logger("test_console")
        logger.info("hello console", market="BTC/USDT")

        captured = capsys.readouterr()
        assert "hello console" in captured.err
        assert "BTC/USDT" in captured.err

    def test_log_level_filtering(self, capsys):
        setup_logging(level="WARNING", log_format="json")
        logger = get_logger("test_level")
        logger.info("should be hidden")
        logger.warning("should appear")

        captured = capsys.readouterr()
        assert "should be hidden" not in captured.err
        assert "should appear" in captured.err

    def test_get_logger_with_context(self, capsys):
        setup_logging(level="INFO", log_format="json")
        logger = get_logger("test_ctx", exchange="binance", asset="ETH")
        logger.info("context test")

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip())
        assert line["exchange"] == "binance"
        assert line["asset"] == "ETH"

    def test_contextvars_binding(self, capsys):
        setup_logging(level="INFO", log_format="json")
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(run_id="abc123")

        logger = get_logger("test_ctxvars")
        logger.info("with context var")

        captured = capsys.readouterr()
        line = json.loads(captured.err.strip())
        assert line["run_id"] == "abc123"

        structlog.contextvars.clear_contextvars()

    def test_engine_events(self, capsys):
        setup_logging(level="INFO", log_format="json")
        engine = MatchingEngine(PortfolioLedger(asset=1))
        engine.place_order("short", "limit", 1, 100)

        captured = capsys.readouterr()
        events = [json.loads(line) for line in captured.err.strip().splitlines()]
        placed = [e for e in events if e["event"] == "order_placed"]
        assert placed[0]["logger"] == "matching_engine"
        assert placed[0]["side"] == "short"

    def test_market_datetimes_are_iso(self, capsys):
        setup_logging(level="INFO", log_format="json")
        start = datetime(2015, 2, 15, 0, 1, tzinfo=timezone.utc)
        get_logger("test_dt").info("candle", start=start)

        line = json.loads(capsys.readouterr().err.strip())
        assert line["start"] == "2015-02-15T00:01:00+00:00"

    def test_custom_stream(self):
        buf = io.StringIO()
        setup_logging(level="INFO", log_format="json", stream=buf)
        get_logger("test_stream").info("to buffer")
        assert json.loads(buf.getvalue())["event"] == "to buffer"

    def test_bind_market_is_scoped(self, capsys):
        setup_logging(level="INFO", log_format="json")
        structlog.contextvars.clear_contextvars()
        logger = get_logger("test_market")

        with bind_market("binance", "BTC", "USDT"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = [json.loads(x) for x in capsys.readouterr().err.strip().splitlines()]
        assert inside["exchange"] == "binance"
        assert inside["market"] == "BTC/USDT"
        assert "market" not in outside

    def test_stdlib_records_are_rendered(self, capsys):
        setup_logging(level="INFO", log_format="json")
        logging.getLogger("plain.stdlib").warning("from stdlib")

        line = json.loads(capsys.readouterr().err.strip())
        assert line["event"] == "from stdlib"
        assert line["level"] == "warning"

    def test_sqlalchemy_engine_is_quiet(self):
        setup_logging(level="DEBUG", log_format="json")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

"""Backtest runner — replays stored candles through the MatchingEngine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

import structlog

from candle_core.backtest.engine import MatchingEngine
from candle_core.backtest.ledger import PortfolioLedger
from candle_core.backtest.reader import CandleReader
from candle_core.candles.batcher import CandleAggregator
from candle_core.config.loader import load_config
from candle_core.config.schema import AppConfig
from candle_core.db.engine import init_engine, session_scope
from candle_core.errors import ConfigurationError
from candle_core.logging.setup import bind_market, setup_logging
from candle_core.models.candle import CandleV1, CandleV2
from candle_core.models.order import Balances, FilledTrade

log = structlog.get_logger("backtest_runner")

Strategy = Callable[[MatchingEngine, CandleV1 | CandleV2], None]


@dataclass
class BacktestResult:
    """Outcome of one replay."""

    candles: int
    balances: Balances
    trades: tuple[FilledTrade, ...] = field(default_factory=tuple)


def build_engine(config: AppConfig) -> MatchingEngine:
    """MatchingEngine with a fresh ledger funded from ``backtest.portfolio``."""
    bt = config.backtest
    ledger = PortfolioLedger(asset=bt.portfolio.asset, currency=bt.portfolio.currency)
    return MatchingEngine(ledger, fee_rate=bt.fee, buy_volume_ratio=bt.buy_volume_ratio)


def run_backtest(
    engine: MatchingEngine,
    candles: Iterable[CandleV1 | CandleV2],
    strategy: Strategy | None = None,
    candle_size: int = 1,
    version: int = 1,
) -> BacktestResult:
    """Feed every candle to the engine, then to the strategy.

    The engine always sees one-minute candles so fills are simulated at
    full resolution. With ``candle_size > 1`` the strategy only sees the
    merged candle at the end of every group.
    """
    aggregator: CandleAggregator | None = None
    if candle_size != 1:
        aggregator = CandleAggregator(candle_size, version=version)

    count = 0
    for candle in candles:
        engine.on_candle(candle)
        count += 1
        if strategy is None:
            continue
        if aggregator is None:
            strategy(engine, candle)
        else:
            merged = aggregator.write(candle)
            if merged is not None:
                strategy(engine, merged)

    if aggregator is not None:
        aggregator.flush()

    result = BacktestResult(
        candles=count,
        balances=engine.balances(),
        trades=engine.trade_history(),
    )
    log.info(
        "backtest_finished",
        candles=count,
        trades=len(result.trades),
        asset=result.balances.asset,
        currency=result.balances.currency,
    )
    return result


def run(config: AppConfig, strategy: Strategy | None = None) -> BacktestResult:
    """Replay the configured range from the database."""
    bt = config.backtest
    if bt.range is None:
        raise ConfigurationError("backtest.range is not set")

    init_engine(config.database.url)
    with bind_market(bt.exchange, bt.asset, bt.currency), session_scope() as session:
        reader = CandleReader(
            session,
            exchange=bt.exchange,
            asset=bt.asset,
            currency=bt.currency,
            version=config.candles.version,
        )
        log.info(
            "backtest_started",
            start=bt.range.start,
            end=bt.range.end,
        )
        return run_backtest(
            build_engine(config),
            reader.iter_range(bt.range.start, bt.range.end),
            strategy=strategy,
            candle_size=config.candles.candle_size,
            version=config.candles.version,
        )


def main(config_path: str | None = None) -> None:
    """Entry point — load config, set up logging, replay the range."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    run(config)

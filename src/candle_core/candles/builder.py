"""CandleBuilder — folds trade batches into one-minute candles.

Trades are bucketed per minute. Every bucket except the one holding the
most recent trade is finalized and dropped; that last bucket is kept
across calls because more trades for its minute may still arrive.

The candle for the kept bucket is withheld from the output and its
start becomes the threshold: later batches only contribute trades that
are strictly newer than it, so re-delivered trades are not counted twice.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

import structlog

from candle_core.candles.classify import classify_bucket
from candle_core.candles.gaps import ONE_MINUTE, fill_gaps
from candle_core.errors import ConfigurationError
from candle_core.models.candle import CandleV1, CandleV2
from candle_core.models.trade import Trade, TradeBatch

log = structlog.get_logger("candle_builder")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def minute_of(ts: datetime) -> datetime:
    """Truncate a timestamp to the start of its minute."""
    return ts.replace(second=0, microsecond=0)


def calculate_candle(
    trades: Sequence[Trade],
    version: int = 1,
    lag: int = 0,
) -> CandleV1 | CandleV2:
    """Aggregate one bucket of trades (all within the same minute)."""
    first = trades[0]
    start = minute_of(first.timestamp)

    high = low = first.price
    volume = 0.0
    notional = 0.0
    for trade in trades:
        high = max(high, trade.price)
        low = min(low, trade.price)
        volume += trade.amount
        notional += trade.price * trade.amount

    fields = dict(
        start=start,
        end=start + ONE_MINUTE,
        open=first.price,
        high=high,
        low=low,
        close=trades[-1].price,
        volume=volume,
        vwp=notional / volume if volume else 0.0,
        trades=len(trades),
    )
    if version != 2:
        return CandleV1(**fields)

    buy_volume = 0.0
    buy_trades = 0
    for trade, side in zip(trades, classify_bucket(trades)):
        if side == "buy":
            buy_volume += trade.amount
            buy_trades += 1
    return CandleV2(
        **fields,
        buy_volume=buy_volume,
        buy_trades=buy_trades,
        lag=lag,
        raw=list(trades),
    )


class CandleBuilder:
    """Stateful trade-to-candle converter for a single market."""

    def __init__(self, version: int = 1) -> None:
        if version not in (1, 2):
            raise ConfigurationError(f"unsupported candle version: {version!r}")
        self.version = version
        self.threshold: datetime = EPOCH
        # minute -> trades, carries the incomplete minute between calls
        self._buckets: dict[datetime, list[Trade]] = {}
        self._last_minute: datetime | None = None

    @property
    def pending(self) -> list[Trade]:
        """Trades of the withheld, not yet complete minute."""
        if self._last_minute is None:
            return []
        return list(self._buckets.get(self._last_minute, []))

    def write(self, batch: TradeBatch | Sequence[Trade]) -> list[CandleV1 | CandleV2]:
        """Consume a batch and return every candle that is now complete.

        The result is contiguous (gaps are filled) and never contains the
        minute of the most recent trade.
        """
        if isinstance(batch, TradeBatch):
            trades, lag = batch.trades, batch.lag
        else:
            trades, lag = list(batch), 0
        if not trades:
            return []

        fresh = [t for t in trades if t.timestamp > self.threshold]
        dropped = len(trades) - len(fresh)
        if dropped:
            log.debug("stale_trades_dropped", count=dropped, threshold=self.threshold)

        for trade in fresh:
            self._buckets.setdefault(minute_of(trade.timestamp), []).append(trade)
        if fresh:
            self._last_minute = minute_of(fresh[-1].timestamp)

        candles = []
        for minute in sorted(self._buckets):
            candles.append(calculate_candle(self._buckets[minute], self.version, lag))
            if minute != self._last_minute:
                del self._buckets[minute]

        candles = fill_gaps(candles)
        if not candles:
            return []

        # the last candle is not complete
        self.threshold = candles.pop().start

        if candles:
            log.debug(
                "candles_built",
                count=len(candles),
                first=candles[0].start,
                last=candles[-1].start,
            )
        return candles

"""CandleAggregator — merges every N one-minute candles into one."""

from __future__ import annotations

from typing import Callable, Sequence

import structlog

from candle_core.errors import ConfigurationError
from candle_core.models.candle import CandleV1, CandleV2

log = structlog.get_logger("candle_batcher")

CandleListener = Callable[[CandleV1 | CandleV2], None]


def merge_candles(
    candles: Sequence[CandleV1 | CandleV2],
    version: int = 1,
) -> CandleV1 | CandleV2:
    """Combine consecutive candles, in arrival order, into a single candle."""
    first, last = candles[0], candles[-1]
    volume = sum(c.volume for c in candles)
    weighted = sum(c.vwp * c.volume for c in candles)

    fields = dict(
        start=first.start,
        end=last.end,
        open=first.open,
        high=max(c.high for c in candles),
        low=min(c.low for c in candles),
        close=last.close,
        volume=volume,
        vwp=weighted / volume if volume else 0.0,
        trades=sum(c.trades for c in candles),
    )
    if version != 2:
        return CandleV1(**fields)

    raw = []
    for c in candles:
        raw.extend(c.raw)
    return CandleV2(
        **fields,
        buy_volume=sum(c.buy_volume for c in candles),
        buy_trades=sum(c.buy_trades for c in candles),
        lag=max(c.lag for c in candles),
        raw=raw,
    )


class CandleAggregator:
    """Buffers base candles and emits one merged candle per ``candle_size``.

    Merged candles are returned from :meth:`write` and also handed to
    ``on_candle`` when a listener is given. A trailing group smaller than
    ``candle_size`` is never emitted.
    """

    def __init__(
        self,
        candle_size: int,
        version: int = 1,
        on_candle: CandleListener | None = None,
    ) -> None:
        if isinstance(candle_size, bool) or not isinstance(candle_size, int):
            raise ConfigurationError(f"candle_size is not an integer: {candle_size!r}")
        if candle_size <= 0:
            raise ConfigurationError(f"candle_size must be positive, got {candle_size}")
        if version not in (1, 2):
            raise ConfigurationError(f"unsupported candle version: {version!r}")

        self.candle_size = candle_size
        self.version = version
        self.on_candle = on_candle
        self._buffer: list[CandleV1 | CandleV2] = []

    def write(self, candle: CandleV1 | CandleV2) -> CandleV1 | CandleV2 | None:
        """Add one base candle; return the merged candle if the group is full."""
        if not isinstance(candle, (CandleV1, CandleV2)):
            raise TypeError(f"expected a single candle, got {type(candle).__name__}")
        if self.version == 2 and not isinstance(candle, CandleV2):
            raise TypeError("a version 2 aggregator needs version 2 candles")

        self._buffer.append(candle)
        if len(self._buffer) < self.candle_size:
            return None

        merged = merge_candles(self._buffer, self.version)
        self._buffer = []
        if self.on_candle is not None:
            self.on_candle(merged)
        return merged

    def flush(self) -> int:
        """Discard an incomplete trailing group and return its size."""
        dropped = len(self._buffer)
        if dropped:
            log.info("partial_group_discarded", candles=dropped, candle_size=self.candle_size)
        self._buffer = []
        return dropped

"""CandlePipeline — trade batches in, finalized candles out to listeners."""

from __future__ import annotations

from typing import Callable, Protocol, Sequence

import structlog

from candle_core.candles.batcher import CandleAggregator
from candle_core.candles.builder import CandleBuilder
from candle_core.models.candle import CandleV1, CandleV2
from candle_core.models.trade import Trade, TradeBatch

log = structlog.get_logger("candle_pipeline")

BatchListener = Callable[[list[CandleV1 | CandleV2]], None]


class CandleSink(Protocol):
    def process_candles(self, candles: list[CandleV1 | CandleV2]) -> None: ...

    def flush(self) -> int: ...


class CandlePipeline:
    """Fans each batch of finalized candles out to the registered listeners.

    Listeners run in registration order. One that raises is logged and
    skipped; the others still get the batch and the builder state is not
    touched. Nothing waits on a listener beyond its own call.

    Sinks (such as a CandleStore) only buffer during ``write``. Their slow
    part runs in ``flush``, which the caller invokes from its own loop.
    """

    def __init__(self, builder: CandleBuilder | None = None) -> None:
        self.builder = builder or CandleBuilder()
        self._listeners: list[tuple[str, BatchListener]] = []
        self._sinks: list[tuple[str, CandleSink]] = []

    def add_listener(self, listener: BatchListener, name: str | None = None) -> None:
        self._listeners.append((name or getattr(listener, "__name__", repr(listener)), listener))

    def add_aggregator(self, aggregator: CandleAggregator) -> None:
        """Feed every finalized candle, one at a time, into *aggregator*."""

        def feed(candles: list[CandleV1 | CandleV2]) -> None:
            for candle in candles:
                aggregator.write(candle)

        self.add_listener(feed, name=f"aggregator_{aggregator.candle_size}")

    def add_sink(self, sink: CandleSink, name: str | None = None) -> None:
        """Buffer every batch into *sink*; write it out on :meth:`flush`."""
        name = name or type(sink).__name__
        self.add_listener(sink.process_candles, name=name)
        self._sinks.append((name, sink))

    def write(self, batch: TradeBatch | Sequence[Trade]) -> list[CandleV1 | CandleV2]:
        candles = self.builder.write(batch)
        if not candles:
            return candles

        for name, listener in self._listeners:
            try:
                listener(list(candles))
            except Exception:
                log.exception("candle_listener_failed", listener=name, candles=len(candles))
        return candles

    def flush(self) -> int:
        """Flush every sink. Returns the number of candles written.

        A sink that raises is logged; its buffer is left for the next call.
        """
        written = 0
        for name, sink in self._sinks:
            try:
                written += sink.flush()
            except Exception:
                log.exception("candle_sink_flush_failed", sink=name)
        return written

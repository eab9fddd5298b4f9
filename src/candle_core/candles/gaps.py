"""Gap filling — one candle per minute, even when nothing traded."""

from __future__ import annotations

from datetime import timedelta
from typing import Sequence

from candle_core.models.candle import CandleV1, CandleV2

ONE_MINUTE = timedelta(minutes=1)


def empty_candle(previous: CandleV1 | CandleV2) -> CandleV1 | CandleV2:
    """Zero-volume candle for the minute after *previous*, flat at its close
    and of the same version."""
    start = previous.start + ONE_MINUTE
    price = previous.close
    fields = dict(
        start=start,
        end=start + ONE_MINUTE,
        open=price,
        high=price,
        low=price,
        close=price,
        vwp=price,
        volume=0.0,
        trades=0,
    )
    if isinstance(previous, CandleV2):
        return CandleV2(**fields, buy_volume=0.0, buy_trades=0, lag=0, raw=[])
    return CandleV1(**fields)


def fill_gaps(candles: Sequence[CandleV1 | CandleV2]) -> list[CandleV1 | CandleV2]:
    """Insert flat candles for every minute missing between the first and
    last candle.

    The result is sorted by ``start`` and holds exactly one candle per
    minute. Synthesized candles take their price from the candle right
    before them, real or synthesized.
    """
    if not candles:
        return []

    ordered = sorted(candles, key=lambda c: c.start)
    filled: list[CandleV1 | CandleV2] = [ordered[0]]
    for candle in ordered[1:]:
        while filled[-1].start + ONE_MINUTE < candle.start:
            filled.append(empty_candle(filled[-1]))
        filled.append(candle)
    return filled

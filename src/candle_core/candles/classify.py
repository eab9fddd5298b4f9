"""Buy/sell inference for trades that arrive without a side tag.

A trade counts as a buy when it prints above the previous trade in the
same bucket, or at the same price right after a buy. Everything else is
a sell. The state starts fresh at ``(0.0, "sell")`` for every bucket.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from candle_core.models.trade import Trade

TradeSide = Literal["buy", "sell"]


@dataclass(frozen=True)
class ClassifierState:
    last_price: float = 0.0
    last_side: TradeSide = "sell"


BUCKET_START = ClassifierState()


def classify_trade(state: ClassifierState, trade: Trade) -> ClassifierState:
    """Return the state after *trade*; its ``last_side`` is the trade's side."""
    price_is_higher = trade.price > state.last_price
    remains_buy = trade.price == state.last_price and state.last_side == "buy"
    side: TradeSide = "buy" if price_is_higher or remains_buy else "sell"
    return ClassifierState(last_price=trade.price, last_side=side)


def classify_bucket(trades: Iterable[Trade]) -> list[TradeSide]:
    """Tag every trade of one bucket, in arrival order."""
    state = BUCKET_START
    sides: list[TradeSide] = []
    for trade in trades:
        state = classify_trade(state, trade)
        sides.append(state.last_side)
    return sides

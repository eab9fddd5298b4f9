"""Candle models.

Two schema versions exist. Version 1 carries plain OHLCV data. Version 2
adds the buy-side split, the exchange lag and the raw trades the candle
was built from. The ``version`` field is the discriminator, so a
``Candle`` is always exactly one of the two shapes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from candle_core.models.trade import Trade


class _CandleFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    vwp: float = 0.0  # volume weighted price, 0 when volume is 0
    trades: int = 0


class CandleV1(_CandleFields):
    """A plain OHLCV candle."""

    version: Literal[1] = 1


class CandleV2(_CandleFields):
    """An OHLCV candle with buy-side volume, lag and raw trades."""

    version: Literal[2] = 2
    buy_volume: float = 0.0
    buy_trades: int = 0
    lag: int = 0
    raw: list[Trade] = Field(default_factory=list)


Candle = Annotated[Union[CandleV1, CandleV2], Field(discriminator="version")]

CANDLE_ADAPTER: TypeAdapter[Candle] = TypeAdapter(Candle)


def parse_candle(data: dict[str, Any]) -> CandleV1 | CandleV2:
    """Validate a dict into the candle variant its ``version`` names.

    A missing ``version`` is treated as 1.
    """
    if "version" not in data:
        data = {**data, "version": 1}
    return CANDLE_ADAPTER.validate_python(data)

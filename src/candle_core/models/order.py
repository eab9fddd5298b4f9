"""Order, fill and balance models for the backtest exchange."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Side = Literal["long", "short"]
OrderKind = Literal["market", "limit"]
OrderStatus = Literal["open", "partial", "closed", "canceled"]


class Order(BaseModel):
    """A resting order. ``amount`` is the unfilled remainder.

    ``reserved`` is what the ledger still holds for it: asset for shorts,
    currency (fee included) for longs.
    """

    id: int
    created_at: datetime | None = None
    side: Side
    kind: OrderKind = "limit"
    price: float = Field(gt=0)
    amount: float = Field(gt=0)
    filled: float = 0.0
    fee: float = 0.0
    reserved: float = 0.0
    status: OrderStatus = "open"

    @property
    def is_active(self) -> bool:
        return self.status in ("open", "partial")


class FilledTrade(BaseModel):
    """One execution against an order. Never mutated once recorded."""

    model_config = ConfigDict(frozen=True)

    time: datetime
    side: Side
    kind: OrderKind
    fee: float
    amount: float
    price: float
    status: Literal["partial", "closed"]
    order_id: int


class Balances(BaseModel):
    """Point-in-time snapshot of the ledger."""

    model_config = ConfigDict(frozen=True)

    asset_available: float
    asset_reserved: float
    currency_available: float
    currency_reserved: float

    @property
    def asset(self) -> float:
        return self.asset_available + self.asset_reserved

    @property
    def currency(self) -> float:
        return self.currency_available + self.currency_reserved

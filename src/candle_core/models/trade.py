"""Trade models — the raw executions candles are built from."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Trade(BaseModel):
    """One exchange execution."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    price: float
    amount: float = Field(ge=0)
    id: str | int

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        # naive timestamps are exchange time, which is always UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class TradeBatch(BaseModel):
    """A fetch worth of trades, ordered by timestamp."""

    trades: list[Trade] = Field(default_factory=list)
    lag: int = 0  # seconds between exchange time and ingestion

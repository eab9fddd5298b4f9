"""CandleReader — loads stored candles for a time range, oldest first."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from candle_core.db.tables.candles import CandleRow
from candle_core.models.candle import CandleV1, CandleV2
from candle_core.models.trade import Trade


def _utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def row_to_candle(row: CandleRow, version: int = 1) -> CandleV1 | CandleV2:
    start = _utc(row.start)
    fields = dict(
        start=start,
        end=start + timedelta(minutes=1),
        open=row.open,
        high=row.high,
        low=row.low,
        close=row.close,
        vwp=row.vwp,
        volume=row.volume,
        trades=row.trades,
    )
    if version != 2:
        return CandleV1(**fields)
    return CandleV2(
        **fields,
        buy_volume=row.buy_volume or 0.0,
        buy_trades=row.buy_trades or 0,
        lag=row.lag or 0,
        raw=[Trade.model_validate(t) for t in row.raw or []],
    )


class CandleReader:
    """Reads one market's one-minute candles."""

    def __init__(
        self,
        session: Session,
        exchange: str,
        asset: str,
        currency: str,
        version: int = 1,
    ) -> None:
        self.session = session
        self.exchange = exchange
        self.asset = asset
        self.currency = currency
        self.version = version

    def get(self, start: datetime, end: datetime) -> list[CandleV1 | CandleV2]:
        """Candles with ``start <= candle.start <= end``, ascending."""
        start, end = _utc(start), _utc(end)
        stmt = (
            select(CandleRow)
            .where(
                CandleRow.exchange == self.exchange,
                CandleRow.asset == self.asset,
                CandleRow.currency == self.currency,
                CandleRow.start >= start,
                CandleRow.start <= end,
            )
            .order_by(CandleRow.start)
        )
        rows = self.session.scalars(stmt).all()
        return [row_to_candle(r, self.version) for r in rows]

    def iter_range(
        self,
        start: datetime,
        end: datetime,
        chunk_minutes: int = 1440,
    ) -> Iterator[CandleV1 | CandleV2]:
        """Yield candles one at a time, querying *chunk_minutes* per round trip."""
        chunk = timedelta(minutes=chunk_minutes)
        cursor = start
        while cursor <= end:
            # chunk bounds are inclusive, so stop one minute short
            upper = min(cursor + chunk - timedelta(minutes=1), end)
            yield from self.get(cursor, upper)
            cursor = upper + timedelta(minutes=1)

"""CandleStore — persists finalized candles, ignoring ones already stored."""

from __future__ import annotations

from typing import Any, Iterable

import structlog
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from candle_core.db.tables.candles import CandleRow
from candle_core.models.candle import CandleV1, CandleV2

log = structlog.get_logger("candle_store")

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def candle_to_row(
    candle: CandleV1 | CandleV2,
    exchange: str,
    asset: str,
    currency: str,
) -> dict[str, Any]:
    """Column values for one candle. v1 candles leave the v2 columns NULL."""
    # every row carries the same keys so a batch renders as one multi-row INSERT
    row = {
        "exchange": exchange,
        "asset": asset,
        "currency": currency,
        "start": candle.start,
        "open": candle.open,
        "high": candle.high,
        "low": candle.low,
        "close": candle.close,
        "vwp": candle.vwp,
        "volume": candle.volume,
        "trades": candle.trades,
        "buy_volume": None,
        "buy_trades": None,
        "lag": None,
        "raw": None,
    }
    if isinstance(candle, CandleV2):
        row.update(
            buy_volume=candle.buy_volume,
            buy_trades=candle.buy_trades,
            lag=candle.lag,
            raw=[t.model_dump(mode="json") for t in candle.raw],
        )
    return row


# one week of one-minute candles
DEFAULT_MAX_PENDING = 10_080


class CandleStore:
    """Buffers candles and writes them in one transaction per flush.

    ``process_candle`` and ``process_candles`` only buffer, so handing
    candles over never waits on the database; the owner calls ``flush``
    outside candle production (see ``CandlePipeline.flush``).

    Writes are idempotent on ``(exchange, asset, currency, start)``, so the
    same candle can be delivered twice (e.g. after a restart) safely. A
    failed flush is rolled back and its candles stay buffered for the next
    attempt. At most ``max_pending`` candles are kept; beyond that the
    oldest are dropped with a warning.
    """

    def __init__(
        self,
        session: Session,
        exchange: str,
        asset: str,
        currency: str,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        if max_pending <= 0:
            raise ValueError(f"max_pending must be positive, got {max_pending}")
        self.session = session
        self.exchange = exchange
        self.asset = asset
        self.currency = currency
        self.max_pending = max_pending
        self._cache: list[CandleV1 | CandleV2] = []
        self.dropped = 0

    @property
    def pending(self) -> int:
        return len(self._cache)

    def process_candle(self, candle: CandleV1 | CandleV2) -> None:
        self.process_candles([candle])

    def process_candles(self, candles: Iterable[CandleV1 | CandleV2]) -> None:
        """Buffer a batch of candles for the next flush."""
        self._cache.extend(candles)
        overflow = len(self._cache) - self.max_pending
        if overflow > 0:
            del self._cache[:overflow]
            self.dropped += overflow
            log.warning(
                "candle_buffer_overflow",
                dropped=overflow,
                max_pending=self.max_pending,
                asset=self.asset,
            )

    def flush(self) -> int:
        """Write all buffered candles. Returns how many were sent."""
        if not self._cache:
            return 0

        dialect = self.session.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"unsupported database dialect: {dialect}")

        rows = [
            candle_to_row(c, self.exchange, self.asset, self.currency)
            for c in self._cache
        ]
        stmt = insert(CandleRow.__table__).values(rows).on_conflict_do_nothing(
            index_elements=["exchange", "asset", "currency", "start"],
        )
        try:
            self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            log.exception("candle_flush_failed", pending=len(rows), asset=self.asset)
            return 0

        self._cache = []
        log.debug("candles_flushed", count=len(rows), asset=self.asset)
        return len(rows)

"""SQLAlchemy ORM model for finalized one-minute candles."""

from sqlalchemy import JSON, BigInteger, Float, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from candle_core.db.base import Base

SCHEMA = "candles"


class CandleRow(Base):
    __tablename__ = "candles"
    __table_args__ = (
        UniqueConstraint("exchange", "asset", "currency", "start"),
        {"schema": SCHEMA},
    )

    # SQLite only autoincrements INTEGER primary keys
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True,
    )
    exchange: Mapped[str] = mapped_column(Text, nullable=False)
    asset: Mapped[str] = mapped_column(Text, nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False)
    start: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    open: Mapped[float] = mapped_column(Float, nullable=False)
    high: Mapped[float] = mapped_column(Float, nullable=False)
    low: Mapped[float] = mapped_column(Float, nullable=False)
    close: Mapped[float] = mapped_column(Float, nullable=False)
    vwp: Mapped[float] = mapped_column(Float, nullable=False)
    volume: Mapped[float] = mapped_column(Float, nullable=False)
    trades: Mapped[int] = mapped_column(Integer, nullable=False)
    # version 2 columns
    buy_volume: Mapped[float | None] = mapped_column(Float, nullable=True)
    buy_trades: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lag: Mapped[int | None] = mapped_column(Integer, nullable=True)
    raw: Mapped[list | None] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

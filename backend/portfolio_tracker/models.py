# backend/portfolio_tracker/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TradeSide(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class Portfolio(Base):
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Relationship: One Portfolio has Many Trades
    trades: Mapped[list["TradeRecord"]] = relationship(back_populates="portfolio", cascade="all, delete-orphan")


class TradeRecord(Base):
    """
    An executed buy or sell, imported from CSV or an exchange API.

    quantity and price are always positive; side carries the direction.
    fee is informational and does not change holdings or invested capital.
    """
    __tablename__ = "trades"
    __table_args__ = (
        # Equity curve replay reads a portfolio's trades in time order
        Index('ix_trade_portfolio_timestamp', 'portfolio_id', 'timestamp'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    symbol: Mapped[str] = mapped_column(String(10), index=True)  # Normalized base symbol, e.g. "BTC"
    side: Mapped[TradeSide] = mapped_column(Enum(TradeSide))
    quantity: Mapped[Decimal] = mapped_column(Numeric(28, 8))
    price: Mapped[Decimal] = mapped_column(Numeric(28, 8))  # Quote currency per unit (USD)
    fee: Mapped[Decimal] = mapped_column(Numeric(28, 8), default=Decimal(0))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    exchange: Mapped[str | None] = mapped_column(String(50), nullable=True)  # e.g. "binance", "bybit", "csv"
    source_id: Mapped[str | None] = mapped_column(String(100), nullable=True)  # Exchange trade id or CSV row
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    portfolio: Mapped["Portfolio"] = relationship(back_populates="trades")


class PriceRecord(Base):
    """
    Daily close price of a symbol in USD.

    One row per symbol per UTC day.
    """
    __tablename__ = "prices"
    __table_args__ = (
        UniqueConstraint('symbol', 'day', name='uq_price_symbol_day'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String(10), index=True)
    day: Mapped[date] = mapped_column(Date, index=True)
    close: Mapped[Decimal] = mapped_column(Numeric(28, 8))
    provider: Mapped[str] = mapped_column(String(50), default="coingecko")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

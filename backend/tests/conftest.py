# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database fixtures (in-memory SQLite)
- In-memory trade and price sources
- Sample data factories
"""

import os

# Settings are validated at import time; run everything in test mode
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("REDIS_URL", None)

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_tracker.models import Base, Portfolio, PriceRecord, TradeSide
from portfolio_tracker.services.exceptions import PortfolioNotFoundError
from portfolio_tracker.services.valuation.types import PricePoint, Trade

# Fixed "today" so range validation never depends on the wall clock
TODAY = date(2024, 6, 30)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test engine, as services receive it."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# IN-MEMORY SOURCES
# =============================================================================

class InMemoryTradeSource:
    """
    TradeSource backed by a dict.

    Unknown portfolio ids raise PortfolioNotFoundError, like the SQL source.
    """

    def __init__(self):
        self._trades: dict[int, list[Trade]] = {}
        self.call_count = 0

    def add_portfolio(self, portfolio_id: int, trades: list[Trade] | None = None) -> None:
        self._trades[portfolio_id] = list(trades or [])

    def add_trades(self, portfolio_id: int, trades: list[Trade]) -> None:
        self._trades.setdefault(portfolio_id, []).extend(trades)

    def get_trades(self, portfolio_id: int) -> list[Trade]:
        self.call_count += 1
        if portfolio_id not in self._trades:
            raise PortfolioNotFoundError(portfolio_id)
        return sorted(self._trades[portfolio_id], key=lambda t: t.timestamp)


class InMemoryPriceSource:
    """PriceSource backed by a dict; records every query it answers."""

    def __init__(self):
        self._prices: dict[str, list[PricePoint]] = {}
        self.requests: list[tuple[str, date, date]] = []

    def set_prices(self, symbol: str, closes: dict[date, Decimal | str | int]) -> None:
        self._prices[symbol.upper()] = [
            PricePoint(symbol=symbol.upper(), day=day, close=Decimal(str(close)))
            for day, close in closes.items()
        ]

    def set_flat_prices(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
            close: Decimal | str | int,
    ) -> None:
        self.set_prices(symbol, {day: close for day in days_between(start_date, end_date)})

    def get_historical_prices(self, symbol: str, start_date: date, end_date: date) -> list[PricePoint]:
        self.requests.append((symbol.upper(), start_date, end_date))
        return [
            point for point in self._prices.get(symbol.upper(), [])
            if start_date <= point.day <= end_date
        ]


@pytest.fixture
def trade_source() -> InMemoryTradeSource:
    """Create a fresh in-memory trade source for each test."""
    return InMemoryTradeSource()


@pytest.fixture
def price_source() -> InMemoryPriceSource:
    """Create a fresh in-memory price source for each test."""
    return InMemoryPriceSource()


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def days_between(start_date: date, end_date: date) -> list[date]:
    """Inclusive list of days, independent of the code under test."""
    return [start_date + timedelta(days=i) for i in range((end_date - start_date).days + 1)]


def make_trade(
        symbol: str = "BTC",
        side: TradeSide | str = TradeSide.BUY,
        quantity: Decimal | str = "1",
        price: Decimal | str = "40000",
        timestamp: datetime | date | None = None,
        fee: Decimal | str = "0",
        exchange: str | None = None,
) -> Trade:
    """Factory function for creating Trade test data."""
    if timestamp is None:
        timestamp = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    elif not isinstance(timestamp, datetime):
        timestamp = datetime(timestamp.year, timestamp.month, timestamp.day, 12, 0, tzinfo=timezone.utc)
    return Trade(
        symbol=symbol,
        side=TradeSide(side),
        quantity=Decimal(quantity),
        price=Decimal(price),
        timestamp=timestamp,
        fee=Decimal(fee),
        exchange=exchange,
    )


def create_portfolio(db: Session, name: str = "Test Portfolio") -> Portfolio:
    """Factory function for creating Portfolio entities in the database."""
    portfolio = Portfolio(name=name)
    db.add(portfolio)
    db.commit()
    db.refresh(portfolio)
    return portfolio


def create_prices(db: Session, symbol: str, closes: dict[date, str]) -> None:
    """Factory function for storing daily closes in the database."""
    db.add_all([
        PriceRecord(symbol=symbol, day=day, close=Decimal(close))
        for day, close in closes.items()
    ])
    db.commit()

# backend/portfolio_tracker/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- SQL-backed sources satisfy protocols without inheritance
- In-memory test doubles work without any base class
- The valuation core never imports a database or cache client
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_tracker.services.valuation.types import PricePoint, Trade


class TradeSource(Protocol):
    """Interface required by EquityCurveService and PortfolioViewsService."""

    def get_trades(self, portfolio_id: int) -> list[Trade]:
        """
        All trades of a portfolio, ordered by timestamp.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        ...


class PriceSource(Protocol):
    """Interface for daily close price history."""

    def get_historical_prices(
        self,
        symbol: str,
        start_date: date,
        end_date: date,
    ) -> list[PricePoint]:
        """Daily closes for symbol within [start_date, end_date], any order."""
        ...


class StablecoinPolicy(Protocol):
    """Decides which symbols are valued at a constant 1.0."""

    def is_stablecoin(self, symbol: str) -> bool:
        ...


class CacheBackend(Protocol):
    """
    Key/value store with per-entry TTL and prefix invalidation.

    Values must be JSON-compatible so a shared backend can store them.
    """

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ...

    def delete_prefix(self, prefix: str) -> int:
        ...

# backend/portfolio_tracker/services/valuation/price_resolver.py
"""
Price resolution with last-observation-carried-forward.

PriceResolver answers "what was symbol X worth on day D" from preloaded
daily closes: the close of the latest observation on or before D. A day
before the first observation resolves to 0 and the caller decides how to
report the gap. Stablecoins always resolve to 1.0 without any lookup.

Histories are fetched once per request by fetch_price_histories(), which
runs the independent per-symbol queries on a small thread pool. After
that, every lookup is an in-memory binary search.
"""

import contextvars
import logging
from bisect import bisect_right
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

from portfolio_tracker.config import settings
from portfolio_tracker.services.constants import STABLECOIN_PRICE, ZERO
from portfolio_tracker.services.protocols import PriceSource, StablecoinPolicy
from portfolio_tracker.services.valuation.types import PricePoint

logger = logging.getLogger(__name__)


class StablecoinSet:
    """StablecoinPolicy backed by a fixed set of symbols."""

    def __init__(self, symbols: Iterable[str] | None = None):
        source = settings.stablecoins if symbols is None else symbols
        self._symbols = frozenset(s.strip().upper() for s in source)

    def is_stablecoin(self, symbol: str) -> bool:
        return symbol.upper() in self._symbols


class PriceResolver:
    """
    Resolves daily prices from preloaded histories.

    Usage:
        resolver = PriceResolver.from_points(points)
        resolver.price_on("BTC", date(2024, 1, 5))
    """

    def __init__(self, stablecoin_policy: StablecoinPolicy | None = None):
        self._stablecoins = stablecoin_policy or StablecoinSet()
        self._days: dict[str, list[date]] = {}
        self._closes: dict[str, list[Decimal]] = {}

    @classmethod
    def from_points(
            cls,
            points: Iterable[PricePoint],
            stablecoin_policy: StablecoinPolicy | None = None,
    ) -> "PriceResolver":
        resolver = cls(stablecoin_policy)
        by_symbol: dict[str, list[PricePoint]] = {}
        for point in points:
            by_symbol.setdefault(point.symbol.upper(), []).append(point)
        for symbol, symbol_points in by_symbol.items():
            resolver.add_history(symbol, symbol_points)
        return resolver

    def add_history(self, symbol: str, points: Iterable[PricePoint]) -> None:
        """
        Load (or replace) the history of one symbol.

        Points may arrive in any order. If a day appears twice the later
        point wins.
        """
        by_day: dict[date, Decimal] = {}
        for point in points:
            by_day[point.day] = point.close
        days = sorted(by_day)
        self._days[symbol.upper()] = days
        self._closes[symbol.upper()] = [by_day[d] for d in days]

    def is_stablecoin(self, symbol: str) -> bool:
        return self._stablecoins.is_stablecoin(symbol)

    def has_history(self, symbol: str) -> bool:
        return bool(self._days.get(symbol.upper()))

    def price_on(self, symbol: str, day: date) -> Decimal:
        """
        Close of the latest observation on or before day.

        Returns 1.0 for stablecoins and 0 when no observation exists on or
        before day.
        """
        if self.is_stablecoin(symbol):
            return STABLECOIN_PRICE

        days = self._days.get(symbol.upper())
        if not days:
            return ZERO

        index = bisect_right(days, day)
        if index == 0:
            return ZERO
        return self._closes[symbol.upper()][index - 1]


def fetch_price_histories(
        price_source: PriceSource,
        symbols: Iterable[str],
        start_date: date,
        end_date: date,
        max_workers: int | None = None,
) -> dict[str, list[PricePoint]]:
    """
    Fetch price histories for several symbols, one query per symbol.

    Queries are independent, so with max_workers > 1 they run on a thread
    pool. Errors from the source propagate to the caller.

    Returns:
        Mapping of symbol to its (possibly empty) list of observations
    """
    symbols = list(dict.fromkeys(s.upper() for s in symbols))
    if not symbols:
        return {}

    workers = min(max_workers or settings.price_fetch_workers, len(symbols))
    logger.debug(
        f"Fetching price history for {len(symbols)} symbols "
        f"from {start_date} to {end_date} ({workers} workers)"
    )

    if workers <= 1:
        return {
            symbol: list(price_source.get_historical_prices(symbol, start_date, end_date))
            for symbol in symbols
        }

    # Each task runs in a copy of the caller's context so worker log lines
    # keep the request's correlation ID
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            symbol: executor.submit(
                contextvars.copy_context().run,
                price_source.get_historical_prices,
                symbol,
                start_date,
                end_date,
            )
            for symbol in symbols
        }
        return {symbol: list(future.result()) for symbol, future in futures.items()}

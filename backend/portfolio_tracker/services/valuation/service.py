# backend/portfolio_tracker/services/valuation/service.py
"""
Equity Curve Service orchestrator.

Entry point for a real portfolio's value history. It:
1. Loads the portfolio's trades from the TradeSource
2. Resolves the date range (defaults: first trade day .. today, UTC)
3. Fetches price histories once, concurrently, with a short lookback so
   the first day can carry a price forward
4. Replays trades through the ValuationEngine
5. Caches full-history curves in the local tier

Architecture:
    EquityCurveService
        ├── uses → TradeSource (trades per portfolio)
        ├── uses → PriceSource (daily closes)
        ├── uses → ValuationEngine + TradeReplaySchedule
        ├── uses → TTLCache (local tier, full-history curves only)
        └── uses → CacheBackend (shared tier, invalidated with the portfolio)

Usage:
    service = EquityCurveService(trade_source, price_source)
    curve = service.calculate_equity_curve(portfolio_id=1)
    curve = service.calculate_equity_curve(1, start_date="2024-01-01", end_date="2024-03-31")
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from portfolio_tracker.config import settings
from portfolio_tracker.services.cache import CacheKeys, TTLCache
from portfolio_tracker.services.constants import ZERO
from portfolio_tracker.services.protocols import (
    CacheBackend,
    PriceSource,
    StablecoinPolicy,
    TradeSource,
)
from portfolio_tracker.services.valuation.engine import ValuationEngine
from portfolio_tracker.services.valuation.holdings import TradeReplaySchedule
from portfolio_tracker.services.valuation.price_resolver import (
    PriceResolver,
    StablecoinSet,
    fetch_price_histories,
)
from portfolio_tracker.services.valuation.types import (
    EquityCurve,
    EquityCurveMetadata,
    Trade,
)
from portfolio_tracker.utils.date_utils import (
    date_range,
    parse_iso_date,
    utc_today,
    validate_date_range,
)

logger = logging.getLogger(__name__)

NO_TRADES_NOTE = "No trades found for this portfolio"


class EquityCurveService:
    """
    Daily value history of real portfolios.

    Only full-history requests (no explicit start or end) are cached.
    Those are the ones the dashboard asks for repeatedly; ad-hoc ranges
    are cheap enough to recompute.
    """

    def __init__(
            self,
            trade_source: TradeSource,
            price_source: PriceSource,
            local_cache: TTLCache | None = None,
            shared_cache: CacheBackend | None = None,
            stablecoin_policy: StablecoinPolicy | None = None,
            engine: ValuationEngine | None = None,
            today: Callable[[], date] = utc_today,
            lookback_days: int | None = None,
            fetch_workers: int | None = None,
    ):
        self._trade_source = trade_source
        self._price_source = price_source
        self._local_cache = local_cache or TTLCache(
            ttl_seconds=settings.equity_cache_ttl_seconds,
            max_entries=settings.equity_cache_max_entries,
            name="equity-cache",
        )
        self._shared_cache = shared_cache
        self._stablecoins = stablecoin_policy or StablecoinSet()
        self._engine = engine or ValuationEngine()
        self._today = today
        self._lookback_days = settings.price_lookback_days if lookback_days is None else lookback_days
        self._fetch_workers = fetch_workers or settings.price_fetch_workers

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def calculate_equity_curve(
            self,
            portfolio_id: int,
            start_date: date | str | None = None,
            end_date: date | str | None = None,
            skip_cache: bool = False,
    ) -> EquityCurve:
        """
        Daily value of a portfolio.

        Args:
            portfolio_id: Portfolio to value
            start_date: First day (default: day of the first trade)
            end_date: Last day (default: today, UTC)
            skip_cache: Recompute even if a cached full-history curve exists

        Returns:
            EquityCurve with one point per day, or no points and a note if
            the portfolio has no trades

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            ValidationError: If a date is malformed
            InvalidRangeError: If the range is reversed or starts in the future
        """
        start = parse_iso_date(start_date, "start_date") if start_date is not None else None
        end = parse_iso_date(end_date, "end_date") if end_date is not None else None
        full_history = start is None and end is None
        cache_key = CacheKeys.equity_curve(portfolio_id)

        if full_history and not skip_cache:
            entry = self._local_cache.get_entry(cache_key)
            if entry is not None:
                curve: EquityCurve = entry.value
                return replace(
                    curve,
                    metadata=replace(curve.metadata, cached=True, cached_at=curve.computed_at),
                )

        trades = self._trade_source.get_trades(portfolio_id)
        if not trades:
            logger.info(f"Portfolio {portfolio_id} has no trades")
            return EquityCurve(
                portfolio_id=portfolio_id,
                points=[],
                metadata=EquityCurveMetadata(
                    first_trade_date=None,
                    total_trades=0,
                    symbols=[],
                    note=NO_TRADES_NOTE,
                ),
            )

        schedule = TradeReplaySchedule(trades)
        today = self._today()
        range_start = start or schedule.trades[0].day
        range_end = end or today
        validate_date_range(range_start, range_end, today)

        resolver = self._load_prices(schedule.symbols, range_start, range_end)
        days = date_range(range_start, range_end)
        result = self._engine.valuate(schedule, resolver, days)

        warnings = [
            f"No historical price data for {symbol}"
            for symbol in schedule.symbols
            if not resolver.is_stablecoin(symbol) and not resolver.has_history(symbol)
        ]
        warnings.extend(result.warnings)

        curve = EquityCurve(
            portfolio_id=portfolio_id,
            points=result.points,
            metadata=EquityCurveMetadata(
                first_trade_date=schedule.trades[0].timestamp,
                total_trades=len(trades),
                symbols=self._reported_symbols(schedule.trades, schedule.symbols),
                warnings=warnings,
            ),
            computed_at=datetime.now(timezone.utc),
        )

        logger.info(
            f"Computed equity curve for portfolio {portfolio_id}: "
            f"{len(days)} days, {len(trades)} trades, {len(warnings)} warnings",
            extra={"portfolio_id": portfolio_id, "days": len(days)},
        )

        if full_history:
            self._local_cache.set(cache_key, curve)

        return curve

    def invalidate_portfolio(self, portfolio_id: int) -> int:
        """
        Drop every cached artifact of a portfolio in both tiers.

        Call after trades are imported or edited.

        Returns:
            Number of entries deleted
        """
        deleted = self._local_cache.delete_prefix(CacheKeys.equity_prefix(portfolio_id))
        if self._shared_cache is not None:
            deleted += self._shared_cache.delete_prefix(CacheKeys.portfolio_prefix(portfolio_id))
        logger.info(f"Invalidated {deleted} cache entries for portfolio {portfolio_id}")
        return deleted

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load_prices(self, symbols: list[str], start_date: date, end_date: date) -> PriceResolver:
        priced = [s for s in symbols if not self._stablecoins.is_stablecoin(s)]
        histories = fetch_price_histories(
            self._price_source,
            priced,
            start_date - timedelta(days=self._lookback_days),
            end_date,
            max_workers=self._fetch_workers,
        )
        resolver = PriceResolver(self._stablecoins)
        for symbol, points in histories.items():
            resolver.add_history(symbol, points)
        return resolver

    def _reported_symbols(self, trades: list[Trade], symbols: list[str]) -> list[str]:
        """Every traded symbol except stablecoins whose net balance is zero."""
        balances = {symbol: ZERO for symbol in symbols}
        for trade in trades:
            balances[trade.symbol] += trade.signed_quantity
        return [
            symbol for symbol in symbols
            if not (self._stablecoins.is_stablecoin(symbol) and balances[symbol] == ZERO)
        ]

# backend/portfolio_tracker/services/portfolio_views.py
"""
Dashboard views of a real portfolio: summary, allocation and positions.

Every view starts from the last point of the full-history equity curve
(holdings and LOCF price per symbol) and adds cost basis from the trade
log. Symbols with zero or negative holdings are left out.

Cost basis per symbol:
    cost_basis = Σ buy quantity × price - Σ sell quantity × price
    avg_cost   = cost_basis / holdings        (0 when nothing is held)
    P&L        = position value - cost_basis
    P&L %      = P&L / cost_basis × 100       (0 when cost_basis <= 0)

Views are cached in the shared tier for PORTFOLIO_VIEW_CACHE_TTL_SECONDS
(default 5 minutes) under portfolio:{id}:{view}:{sort_by}:{order} and are
dropped when the portfolio's trades change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import TypeAdapter

from portfolio_tracker.config import settings
from portfolio_tracker.models import TradeSide
from portfolio_tracker.services.analytics.metrics import (
    calculate_daily_returns,
    calculate_max_drawdown,
    calculate_volatility,
)
from portfolio_tracker.services.cache import CacheKeys, TTLCache
from portfolio_tracker.services.constants import (
    HUNDRED,
    POSITION_SORT_FIELDS,
    SORT_ORDERS,
    ZERO,
)
from portfolio_tracker.services.exceptions import ValidationError
from portfolio_tracker.services.protocols import CacheBackend, TradeSource
from portfolio_tracker.services.valuation.service import EquityCurveService
from portfolio_tracker.services.valuation.types import EquityCurve, Trade
from portfolio_tracker.utils.rounding import round_money, round_price, round_quantity

logger = logging.getLogger(__name__)


# =============================================================================
# TYPES
# =============================================================================


@dataclass(frozen=True)
class PnL:
    value: Decimal
    percent: Decimal


@dataclass(frozen=True)
class AllocationItem:
    symbol: str
    holdings: Decimal
    price: Decimal
    value: Decimal
    percent: Decimal


@dataclass(frozen=True)
class PortfolioAllocation:
    portfolio_id: int
    current_value: Decimal
    allocation: list[AllocationItem]
    last_updated: datetime
    cached: bool = False


@dataclass(frozen=True)
class SummaryPosition:
    symbol: str
    holdings: Decimal
    current_price: Decimal
    position_value: Decimal
    percent_of_portfolio: Decimal
    pnl: PnL


@dataclass(frozen=True)
class KeyMetrics:
    """Risk metrics of the full-history equity curve, in percent."""

    volatility_percent: Decimal
    max_drawdown_percent: Decimal


@dataclass(frozen=True)
class TradeStats:
    total_trades: int
    first_trade_date: datetime | None
    last_trade_date: datetime | None
    symbols: list[str] = field(default_factory=list)
    exchanges: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PortfolioSummary:
    portfolio_id: int
    total_value: Decimal
    cost_basis: Decimal
    pnl: PnL
    allocation: list[SummaryPosition]
    key_metrics: KeyMetrics
    stats: TradeStats
    last_updated: datetime
    cached: bool = False


@dataclass(frozen=True)
class Position:
    symbol: str
    holdings: Decimal
    avg_cost: Decimal
    entry_date: datetime | None
    current_price: Decimal
    position_value: Decimal
    cost_value: Decimal
    pnl: PnL
    percent_of_portfolio: Decimal
    trades_count: int
    exchange_sources: list[str]


@dataclass(frozen=True)
class PositionsSummary:
    total_positions: int
    winning_positions: int
    losing_positions: int
    total_pnl: Decimal
    total_roi: Decimal


@dataclass(frozen=True)
class PortfolioPositions:
    portfolio_id: int
    total_value: Decimal
    positions: list[Position]
    summary: PositionsSummary
    last_updated: datetime
    cached: bool = False


@dataclass
class CostBasis:
    """Running buy/sell totals of one symbol."""

    buy_quantity: Decimal = ZERO
    buy_value: Decimal = ZERO
    sell_quantity: Decimal = ZERO
    sell_value: Decimal = ZERO
    trades_count: int = 0
    entry_date: datetime | None = None
    exchanges: list[str] = field(default_factory=list)

    @property
    def cost_basis(self) -> Decimal:
        return self.buy_value - self.sell_value

    def average_cost(self, holdings: Decimal) -> Decimal:
        return self.cost_basis / holdings if holdings > ZERO else ZERO


def calculate_cost_basis(trades: list[Trade]) -> dict[str, CostBasis]:
    """Aggregate trades per symbol. Entry date is the first BUY's timestamp."""
    result: dict[str, CostBasis] = {}
    for trade in sorted(trades, key=lambda t: t.timestamp):
        basis = result.setdefault(trade.symbol, CostBasis())
        basis.trades_count += 1
        if trade.exchange and trade.exchange not in basis.exchanges:
            basis.exchanges.append(trade.exchange)
        if trade.side == TradeSide.BUY:
            basis.buy_quantity += trade.quantity
            basis.buy_value += trade.notional
            if basis.entry_date is None:
                basis.entry_date = trade.timestamp
        else:
            basis.sell_quantity += trade.quantity
            basis.sell_value += trade.notional
    return result


def _pnl(position_value: Decimal, cost_value: Decimal) -> PnL:
    value = position_value - cost_value
    percent = value / cost_value * HUNDRED if cost_value > ZERO else ZERO
    return PnL(value=round_money(value), percent=round_money(percent))


def _share(value: Decimal, total: Decimal) -> Decimal:
    return round_money(value / total * HUNDRED) if total > ZERO else ZERO


@dataclass(frozen=True)
class _Holding:
    symbol: str
    holdings: Decimal
    price: Decimal
    value: Decimal


# =============================================================================
# SERVICE
# =============================================================================


class PortfolioViewsService:
    """
    Summary, allocation and positions of a portfolio, with caching.

    Usage:
        views = PortfolioViewsService(equity_service, trade_source, cache)
        summary = views.get_summary(portfolio_id=1)
        positions = views.get_positions(1, sort_by="pnl", order="asc")
    """

    _summary_adapter = TypeAdapter(PortfolioSummary)
    _allocation_adapter = TypeAdapter(PortfolioAllocation)
    _positions_adapter = TypeAdapter(PortfolioPositions)

    def __init__(
            self,
            equity_service: EquityCurveService,
            trade_source: TradeSource,
            cache: CacheBackend | None = None,
            ttl_seconds: int | None = None,
            clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._equity_service = equity_service
        self._trade_source = trade_source
        self._ttl_seconds = ttl_seconds or settings.portfolio_view_cache_ttl_seconds
        self._cache = cache if cache is not None else TTLCache(
            ttl_seconds=self._ttl_seconds,
            max_entries=settings.equity_cache_max_entries,
            name="portfolio-view-cache",
        )
        self._clock = clock

    # =========================================================================
    # VIEWS
    # =========================================================================

    def get_summary(self, portfolio_id: int) -> PortfolioSummary:
        """
        Current value, cost basis, P&L, per-symbol allocation, risk metrics
        and trade statistics.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        cache_key = CacheKeys.portfolio_view(portfolio_id, "summary")
        cached = self._cache.get(cache_key)
        if cached is not None:
            return replace(self._summary_adapter.validate_python(cached), cached=True)

        curve = self._equity_service.calculate_equity_curve(portfolio_id)
        trades = self._trade_source.get_trades(portfolio_id)
        cost_basis = calculate_cost_basis(trades)
        holdings = self._current_holdings(curve)

        total_value = sum((h.value for h in holdings), ZERO)
        total_cost = sum(
            (cost_basis[h.symbol].cost_basis for h in holdings if h.symbol in cost_basis),
            ZERO,
        )
        allocation = [
            SummaryPosition(
                symbol=h.symbol,
                holdings=round_quantity(h.holdings),
                current_price=round_price(h.price),
                position_value=round_money(h.value),
                percent_of_portfolio=_share(h.value, total_value),
                pnl=_pnl(h.value, cost_basis[h.symbol].cost_basis if h.symbol in cost_basis else ZERO),
            )
            for h in sorted(holdings, key=lambda h: h.value, reverse=True)
        ]

        values = [point.total_value for point in curve.points]
        summary = PortfolioSummary(
            portfolio_id=portfolio_id,
            total_value=round_money(total_value),
            cost_basis=round_money(total_cost),
            pnl=_pnl(total_value, total_cost),
            allocation=allocation,
            key_metrics=KeyMetrics(
                volatility_percent=round_money(calculate_volatility(calculate_daily_returns(values))),
                max_drawdown_percent=round_money(calculate_max_drawdown(values)),
            ),
            stats=self._trade_stats(trades),
            last_updated=self._clock(),
        )

        self._cache.set(cache_key, self._summary_adapter.dump_python(summary, mode="json"), self._ttl_seconds)
        return summary

    def get_allocation(self, portfolio_id: int) -> PortfolioAllocation:
        """
        Value and share of each held symbol, largest first.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        cache_key = CacheKeys.portfolio_view(portfolio_id, "allocation")
        cached = self._cache.get(cache_key)
        if cached is not None:
            return replace(self._allocation_adapter.validate_python(cached), cached=True)

        curve = self._equity_service.calculate_equity_curve(portfolio_id)
        holdings = self._current_holdings(curve)
        total_value = sum((h.value for h in holdings), ZERO)

        allocation = PortfolioAllocation(
            portfolio_id=portfolio_id,
            current_value=round_money(total_value),
            allocation=[
                AllocationItem(
                    symbol=h.symbol,
                    holdings=round_quantity(h.holdings),
                    price=round_price(h.price),
                    value=round_money(h.value),
                    percent=_share(h.value, total_value),
                )
                for h in sorted(holdings, key=lambda h: h.value, reverse=True)
            ],
            last_updated=self._clock(),
        )

        self._cache.set(cache_key, self._allocation_adapter.dump_python(allocation, mode="json"), self._ttl_seconds)
        return allocation

    def get_positions(
            self,
            portfolio_id: int,
            sort_by: str = "value",
            order: str = "desc",
    ) -> PortfolioPositions:
        """
        Detailed position table.

        Args:
            sort_by: value, symbol, percent or pnl
            order: asc or desc

        Raises:
            ValidationError: If sort_by or order is not supported
            PortfolioNotFoundError: If the portfolio does not exist
        """
        sort_by = sort_by.lower()
        order = order.lower()
        if sort_by not in POSITION_SORT_FIELDS:
            raise ValidationError(
                f"Invalid sort field '{sort_by}'. Use one of: {', '.join(POSITION_SORT_FIELDS)}",
                field="sort_by",
            )
        if order not in SORT_ORDERS:
            raise ValidationError(f"Invalid sort order '{order}'. Use asc or desc", field="order")

        cache_key = CacheKeys.portfolio_view(portfolio_id, "positions", sort_by, order)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return replace(self._positions_adapter.validate_python(cached), cached=True)

        curve = self._equity_service.calculate_equity_curve(portfolio_id)
        trades = self._trade_source.get_trades(portfolio_id)
        cost_basis = calculate_cost_basis(trades)
        holdings = self._current_holdings(curve)
        total_value = sum((h.value for h in holdings), ZERO)

        positions = []
        for h in holdings:
            basis = cost_basis.get(h.symbol, CostBasis())
            positions.append(Position(
                symbol=h.symbol,
                holdings=round_quantity(h.holdings),
                avg_cost=round_price(basis.average_cost(h.holdings)),
                entry_date=basis.entry_date,
                current_price=round_price(h.price),
                position_value=round_money(h.value),
                cost_value=round_money(basis.cost_basis),
                pnl=_pnl(h.value, basis.cost_basis),
                percent_of_portfolio=_share(h.value, total_value),
                trades_count=basis.trades_count,
                exchange_sources=list(basis.exchanges),
            ))

        sort_keys = {
            "value": lambda p: p.position_value,
            "symbol": lambda p: p.symbol,
            "percent": lambda p: p.percent_of_portfolio,
            "pnl": lambda p: p.pnl.value,
        }
        positions.sort(key=sort_keys[sort_by], reverse=(order == "desc"))

        total_pnl = sum((p.pnl.value for p in positions), ZERO)
        result = PortfolioPositions(
            portfolio_id=portfolio_id,
            total_value=round_money(total_value),
            positions=positions,
            summary=PositionsSummary(
                total_positions=len(positions),
                winning_positions=sum(1 for p in positions if p.pnl.value > ZERO),
                losing_positions=sum(1 for p in positions if p.pnl.value < ZERO),
                total_pnl=round_money(total_pnl),
                total_roi=_share(total_pnl, total_value),
            ),
            last_updated=self._clock(),
        )

        self._cache.set(cache_key, self._positions_adapter.dump_python(result, mode="json"), self._ttl_seconds)
        return result

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _current_holdings(curve: EquityCurve) -> list[_Holding]:
        """Positive holdings on the last day of the curve, valued at that day's price."""
        if not curve.points:
            return []
        last = curve.points[-1]
        return [
            _Holding(symbol=symbol, holdings=entry.holdings, price=entry.price, value=entry.value)
            for symbol, entry in last.breakdown.items()
            if entry.holdings > ZERO
        ]

    @staticmethod
    def _trade_stats(trades: list[Trade]) -> TradeStats:
        if not trades:
            return TradeStats(total_trades=0, first_trade_date=None, last_trade_date=None)
        timestamps = [t.timestamp for t in trades]
        return TradeStats(
            total_trades=len(trades),
            first_trade_date=min(timestamps),
            last_trade_date=max(timestamps),
            symbols=sorted({t.symbol for t in trades}),
            exchanges=sorted({t.exchange for t in trades if t.exchange}),
        )

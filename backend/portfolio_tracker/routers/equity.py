# backend/portfolio_tracker/routers/equity.py
"""
Portfolio equity curve and dashboard endpoints.

- GET /portfolios/{id}/equity-curve - Daily value with per-symbol breakdown
- GET /portfolios/{id}/equity-curve/stats - Return and drawdown statistics
- GET /portfolios/{id}/summary - Value, P&L, allocation, risk, trade stats
- GET /portfolios/{id}/allocation - Value share of each held symbol
- GET /portfolios/{id}/positions - Position table with cost basis

Note: These endpoints are nested under /portfolios/{id} because every view
is in the context of a specific portfolio.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from portfolio_tracker.config import settings
from portfolio_tracker.dependencies import (
    get_equity_curve_service,
    get_portfolio_views_service,
)
from portfolio_tracker.schemas.equity import (
    EquityCurveResponse,
    EquityStatsResponse,
    EquityStatsSchema,
    PortfolioAllocationResponse,
    PortfolioPositionsResponse,
    PortfolioSummaryResponse,
)
from portfolio_tracker.services.analytics import calculate_equity_stats
from portfolio_tracker.services.portfolio_views import PortfolioViewsService
from portfolio_tracker.services.valuation import EquityCurveService
from portfolio_tracker.utils.date_utils import validate_range_size

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios",
    tags=["Equity"],
)


def _check_range_size(start_date: date | None, end_date: date | None) -> None:
    """Reject explicit ranges longer than MAX_RANGE_DAYS."""
    if start_date is not None and end_date is not None:
        validate_range_size(start_date, end_date, settings.max_range_days)


# =============================================================================
# EQUITY CURVE
# =============================================================================

@router.get(
    "/{portfolio_id}/equity-curve",
    response_model=EquityCurveResponse,
    summary="Get portfolio equity curve",
    response_description="One point per UTC day with per-symbol breakdown",
)
def get_equity_curve(
        portfolio_id: int,
        start_date: date | None = Query(
            default=None,
            description="First day (default: day of the first trade)",
        ),
        end_date: date | None = Query(
            default=None,
            description="Last day (default: today, UTC)",
        ),
        skip_cache: bool = Query(
            default=False,
            description="Recompute even if a cached curve exists",
        ),
        service: EquityCurveService = Depends(get_equity_curve_service),
) -> EquityCurveResponse:
    """
    Get the daily value of a portfolio.

    Holdings are replayed from the trade log and valued at each day's
    close (or the last earlier close when a day has no price). Days where
    a held symbol has no price at all are valued at 0 for that symbol and
    listed in `metadata.warnings`.

    A portfolio without trades returns an empty `data` list with a note.
    """
    _check_range_size(start_date, end_date)
    # Domain exceptions propagate to global handlers
    curve = service.calculate_equity_curve(
        portfolio_id,
        start_date=start_date,
        end_date=end_date,
        skip_cache=skip_cache,
    )
    return EquityCurveResponse.model_validate(curve)


@router.get(
    "/{portfolio_id}/equity-curve/stats",
    response_model=EquityStatsResponse,
    summary="Get equity curve statistics",
)
def get_equity_curve_stats(
        portfolio_id: int,
        start_date: date | None = Query(default=None),
        end_date: date | None = Query(default=None),
        service: EquityCurveService = Depends(get_equity_curve_service),
) -> EquityStatsResponse:
    """
    Start/end value, total return, value range and max drawdown of the
    equity curve. `stats` is null when the portfolio has no trades.
    """
    _check_range_size(start_date, end_date)
    curve = service.calculate_equity_curve(portfolio_id, start_date=start_date, end_date=end_date)
    stats = calculate_equity_stats(curve.points)

    return EquityStatsResponse(
        portfolio_id=portfolio_id,
        start_date=curve.points[0].day if curve.points else None,
        end_date=curve.points[-1].day if curve.points else None,
        stats=EquityStatsSchema.model_validate(stats) if stats is not None else None,
    )


# =============================================================================
# DASHBOARD VIEWS
# =============================================================================

@router.get(
    "/{portfolio_id}/summary",
    response_model=PortfolioSummaryResponse,
    summary="Get portfolio summary",
)
def get_portfolio_summary(
        portfolio_id: int,
        service: PortfolioViewsService = Depends(get_portfolio_views_service),
) -> PortfolioSummaryResponse:
    """
    Current value, cost basis, P&L, allocation, volatility, max drawdown
    and trade statistics. Cached for a few minutes.
    """
    return PortfolioSummaryResponse.model_validate(service.get_summary(portfolio_id))


@router.get(
    "/{portfolio_id}/allocation",
    response_model=PortfolioAllocationResponse,
    summary="Get portfolio allocation",
)
def get_portfolio_allocation(
        portfolio_id: int,
        service: PortfolioViewsService = Depends(get_portfolio_views_service),
) -> PortfolioAllocationResponse:
    return PortfolioAllocationResponse.model_validate(service.get_allocation(portfolio_id))


@router.get(
    "/{portfolio_id}/positions",
    response_model=PortfolioPositionsResponse,
    summary="Get portfolio positions",
)
def get_portfolio_positions(
        portfolio_id: int,
        sort_by: str = Query(
            default="value",
            description="Sort field: value, symbol, percent, pnl",
        ),
        order: str = Query(
            default="desc",
            description="Sort order: asc or desc",
        ),
        service: PortfolioViewsService = Depends(get_portfolio_views_service),
) -> PortfolioPositionsResponse:
    """
    Held positions with average cost, P&L and share of the portfolio.

    An unsupported `sort_by` or `order` returns **400**.
    """
    positions = service.get_positions(portfolio_id, sort_by=sort_by, order=order)
    return PortfolioPositionsResponse.model_validate(positions)

# backend/portfolio_tracker/schemas/equity.py
"""
Pydantic schemas for portfolio equity curves and dashboard views.

These schemas handle:
- Equity curve (daily value with per-symbol breakdown)
- Equity curve statistics
- Portfolio summary, allocation and positions

All schemas read directly from the internal service dataclasses
(from_attributes=True). Internal `day` fields are exposed as `date`.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# EQUITY CURVE
# =============================================================================

class BreakdownEntrySchema(BaseModel):
    """One symbol's holdings, price and value on a day."""

    model_config = ConfigDict(from_attributes=True)

    holdings: Decimal = Field(..., description="Quantity held (8 decimal places)")
    price: Decimal = Field(..., description="Close price used, USD (2 decimal places)")
    value: Decimal = Field(..., description="holdings × price, USD")


class EquityCurvePointSchema(BaseModel):
    """Portfolio value on one UTC day."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    date: dt.date = Field(..., validation_alias="day")
    total_value: Decimal = Field(..., description="Sum of breakdown values, USD")
    invested: Decimal = Field(..., description="Net capital committed so far, USD")
    breakdown: dict[str, BreakdownEntrySchema]


class EquityCurveMetadataSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    first_trade_date: dt.datetime | None
    total_trades: int
    symbols: list[str]
    warnings: list[str]
    cached: bool = False
    cached_at: dt.datetime | None = None
    note: str | None = None


class EquityCurveResponse(BaseModel):
    """
    Daily equity curve of a portfolio.

    Used by GET /portfolios/{id}/equity-curve
    """

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    portfolio_id: int
    data: list[EquityCurvePointSchema] = Field(..., validation_alias="points")
    metadata: EquityCurveMetadataSchema


class EquityStatsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_value: Decimal
    end_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    max_value: Decimal
    min_value: Decimal
    avg_value: Decimal
    max_drawdown: Decimal = Field(..., description="Largest peak-to-trough decline, percent")
    days: int


class EquityStatsResponse(BaseModel):
    """
    Statistics of a portfolio's equity curve.

    stats is null when the portfolio has no trades.
    """

    portfolio_id: int
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    stats: EquityStatsSchema | None = None


# =============================================================================
# PORTFOLIO VIEWS
# =============================================================================

class PnLSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    value: Decimal
    percent: Decimal


class AllocationItemSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    holdings: Decimal
    price: Decimal
    value: Decimal
    percent: Decimal = Field(..., description="Share of portfolio value, percent")


class PortfolioAllocationResponse(BaseModel):
    """Used by GET /portfolios/{id}/allocation"""

    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    current_value: Decimal
    allocation: list[AllocationItemSchema]
    last_updated: dt.datetime
    cached: bool = False


class SummaryPositionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    holdings: Decimal
    current_price: Decimal
    position_value: Decimal
    percent_of_portfolio: Decimal
    pnl: PnLSchema


class KeyMetricsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    volatility_percent: Decimal
    max_drawdown_percent: Decimal


class TradeStatsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_trades: int
    first_trade_date: dt.datetime | None
    last_trade_date: dt.datetime | None
    symbols: list[str]
    exchanges: list[str]


class PortfolioSummaryResponse(BaseModel):
    """Used by GET /portfolios/{id}/summary"""

    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    total_value: Decimal
    cost_basis: Decimal
    pnl: PnLSchema
    allocation: list[SummaryPositionSchema]
    key_metrics: KeyMetricsSchema
    stats: TradeStatsSchema
    last_updated: dt.datetime
    cached: bool = False


class PositionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    holdings: Decimal
    avg_cost: Decimal
    entry_date: dt.datetime | None
    current_price: Decimal
    position_value: Decimal
    cost_value: Decimal
    pnl: PnLSchema
    percent_of_portfolio: Decimal
    trades_count: int
    exchange_sources: list[str]


class PositionsSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_positions: int
    winning_positions: int
    losing_positions: int
    total_pnl: Decimal
    total_roi: Decimal


class PortfolioPositionsResponse(BaseModel):
    """Used by GET /portfolios/{id}/positions"""

    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    total_value: Decimal
    positions: list[PositionSchema]
    summary: PositionsSummarySchema
    last_updated: dt.datetime
    cached: bool = False

# backend/portfolio_tracker/schemas/simulations.py
"""
Pydantic schemas for strategy simulations.

Request schemas only check types; business rules (positive amount,
supported asset, pair ratio) are enforced by SimulationService and
reported as 400 responses.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from portfolio_tracker.schemas.equity import EquityCurvePointSchema


# =============================================================================
# REQUESTS
# =============================================================================

class DCASimulationRequest(BaseModel):
    """Body of POST /simulations/dca"""

    start_date: dt.date = Field(..., description="First purchase day (YYYY-MM-DD)")
    end_date: dt.date = Field(..., description="Last valued day (YYYY-MM-DD)")
    amount: Decimal = Field(..., description="USD per purchase")
    interval: int = Field(..., description="Days between purchases")
    asset: str = Field(default="BTC", description="Asset for single-asset DCA")
    pair: str | None = Field(
        default=None,
        description="Split each purchase between BTC and ETH, e.g. '70/30'",
    )


# =============================================================================
# RESPONSES
# =============================================================================

class SeriesMetricsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal
    total_invested: Decimal
    pnl: Decimal
    pnl_percent: Decimal
    max_drawdown: Decimal
    volatility: Decimal = Field(..., description="Annualized, percent")
    cagr: Decimal = Field(..., description="Percent")


class DCADailyPointSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    date: dt.date = Field(..., validation_alias="day")
    invested: Decimal
    dca_value: Decimal
    dca_holdings: dict[str, Decimal]
    hodl_value: Decimal
    hodl_holdings: dict[str, Decimal]


class DCASimulationResponse(BaseModel):
    """DCA vs HODL comparison."""

    model_config = ConfigDict(from_attributes=True)

    asset: str
    allocation: dict[str, Decimal]
    start_date: dt.date
    end_date: dt.date
    amount: Decimal
    interval: int
    frequency: str
    purchase_count: int
    dca: SeriesMetricsSchema
    hodl: SeriesMetricsSchema
    daily_data: list[DCADailyPointSchema]
    warnings: list[str]
    cached: bool = False


class PresetHoldingSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    target_percent: Decimal
    holdings: Decimal
    value: Decimal
    current_percent: Decimal


class PresetResponse(BaseModel):
    """A preset portfolio over a range."""

    model_config = ConfigDict(from_attributes=True)

    preset: str
    name: str
    description: str
    rebalance: bool
    start_date: dt.date
    end_date: dt.date
    initial_capital: Decimal
    metrics: SeriesMetricsSchema
    allocation: list[PresetHoldingSchema]
    daily_data: list[EquityCurvePointSchema]
    warnings: list[str]
    cached: bool = False


class PresetListResponse(BaseModel):
    start_date: dt.date
    end_date: dt.date
    presets: list[PresetResponse]

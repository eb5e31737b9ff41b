# backend/portfolio_tracker/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

- errors: Error response formats
- equity: Equity curves, stats and portfolio views
- simulations: DCA and preset simulations

Usage:
    from portfolio_tracker.schemas import EquityCurveResponse, DCASimulationRequest
"""

from portfolio_tracker.schemas.errors import ErrorDetail, FieldError, ValidationErrorDetail
from portfolio_tracker.schemas.equity import (
    EquityCurveResponse,
    EquityStatsResponse,
    PortfolioAllocationResponse,
    PortfolioPositionsResponse,
    PortfolioSummaryResponse,
)
from portfolio_tracker.schemas.simulations import (
    DCASimulationRequest,
    DCASimulationResponse,
    PresetListResponse,
    PresetResponse,
)

__all__ = [
    "ErrorDetail",
    "FieldError",
    "ValidationErrorDetail",
    "EquityCurveResponse",
    "EquityStatsResponse",
    "PortfolioAllocationResponse",
    "PortfolioPositionsResponse",
    "PortfolioSummaryResponse",
    "DCASimulationRequest",
    "DCASimulationResponse",
    "PresetListResponse",
    "PresetResponse",
]

# backend/portfolio_tracker/services/simulation/types.py
"""
Internal data types for the Simulation Service.

Plain dataclasses, like the valuation types. They round-trip through
pydantic's TypeAdapter when stored in the shared cache, so every field
type must be one pydantic can validate from JSON.

Type Hierarchy:
    DCADailyPoint       - DCA and HODL side by side on one day
    DCASimulationResult - DCA vs HODL comparison
    PresetHolding       - End-of-range position of one preset asset
    PresetResult        - One preset portfolio over a range
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from portfolio_tracker.services.analytics.metrics import SeriesMetrics
from portfolio_tracker.services.valuation.types import EquityCurvePoint


# =============================================================================
# DCA
# =============================================================================


@dataclass(frozen=True)
class DCADailyPoint:
    """
    Both strategies on one day.

    invested is the DCA capital committed so far; HODL committed its full
    amount on the first day.
    """

    day: date
    invested: Decimal
    dca_value: Decimal
    dca_holdings: dict[str, Decimal]
    hodl_value: Decimal
    hodl_holdings: dict[str, Decimal]


@dataclass(frozen=True)
class DCASimulationResult:
    """
    DCA compared with a lump-sum HODL of the same total amount.

    Attributes:
        asset: Display label ("BTC" or "BTC/ETH 70/30")
        allocation: Percent of each purchase per symbol
        amount: USD per purchase
        interval: Days between purchases
        frequency: Human label of the interval
        purchase_count: Number of purchase days in range
        dca: Metrics of the DCA strategy
        hodl: Metrics of the HODL strategy
        daily_data: One entry per calendar day
        warnings: Skipped purchases and price gaps
        cached: True when served from the cache
    """

    asset: str
    allocation: dict[str, Decimal]
    start_date: date
    end_date: date
    amount: Decimal
    interval: int
    frequency: str
    purchase_count: int
    dca: SeriesMetrics
    hodl: SeriesMetrics
    daily_data: list[DCADailyPoint]
    warnings: list[str] = field(default_factory=list)
    cached: bool = False


# =============================================================================
# PRESETS
# =============================================================================


@dataclass(frozen=True)
class PresetHolding:
    symbol: str
    target_percent: Decimal
    holdings: Decimal
    value: Decimal
    current_percent: Decimal


@dataclass(frozen=True)
class PresetResult:
    """A preset portfolio valued over a range."""

    preset: str
    name: str
    description: str
    rebalance: bool
    start_date: date
    end_date: date
    initial_capital: Decimal
    metrics: SeriesMetrics
    allocation: list[PresetHolding]
    daily_data: list[EquityCurvePoint]
    warnings: list[str] = field(default_factory=list)
    cached: bool = False

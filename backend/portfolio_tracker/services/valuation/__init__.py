# backend/portfolio_tracker/services/valuation/__init__.py
"""
Valuation Package.

Values any holdings schedule day by day:
- Real portfolios (trade replay)
- Simulated strategies (see services/simulation)

Usage:
    from portfolio_tracker.services.valuation import EquityCurveService

    service = EquityCurveService(trade_source, price_source)
    curve = service.calculate_equity_curve(portfolio_id=1)

Architecture:
    valuation/
    ├── __init__.py          # This file - package exports
    ├── types.py             # Internal data classes
    ├── price_resolver.py    # LOCF price lookup + concurrent history fetch
    ├── holdings.py          # HoldingsSchedule + TradeReplaySchedule
    ├── engine.py            # ValuationEngine (the single valuation loop)
    └── service.py           # EquityCurveService (orchestrator)

Data Flow:
    Trades → TradeReplaySchedule → holdings per day
    PriceSource → PriceResolver → price per symbol per day
    Holdings + Prices → ValuationEngine → EquityCurvePoint per day
"""

from portfolio_tracker.services.valuation.engine import ValuationEngine
from portfolio_tracker.services.valuation.holdings import (
    HoldingsSchedule,
    TradeReplaySchedule,
)
from portfolio_tracker.services.valuation.price_resolver import (
    PriceResolver,
    StablecoinSet,
    fetch_price_histories,
)
from portfolio_tracker.services.valuation.service import EquityCurveService
from portfolio_tracker.services.valuation.types import (
    BreakdownEntry,
    EquityCurve,
    EquityCurveMetadata,
    EquityCurvePoint,
    PricePoint,
    Trade,
    ValuationResult,
)

__all__ = [
    "EquityCurveService",
    "ValuationEngine",
    "HoldingsSchedule",
    "TradeReplaySchedule",
    "PriceResolver",
    "StablecoinSet",
    "fetch_price_histories",
    "BreakdownEntry",
    "EquityCurve",
    "EquityCurveMetadata",
    "EquityCurvePoint",
    "PricePoint",
    "Trade",
    "ValuationResult",
]

# backend/portfolio_tracker/routers/__init__.py
"""
API routers for the Portfolio Tracker.

Each router handles a specific domain:
- equity: Equity curves and dashboard views of a portfolio
- simulations: DCA/HODL comparisons and preset portfolios
"""

from portfolio_tracker.routers.equity import router as equity_router
from portfolio_tracker.routers.simulations import router as simulations_router

__all__ = [
    "equity_router",
    "simulations_router",
]

# backend/portfolio_tracker/services/analytics/__init__.py
"""
Analytics Package.

Pure metric functions over daily value series (P&L, drawdown, volatility,
CAGR) and the aggregates built from them.
"""

from portfolio_tracker.services.analytics.metrics import (
    EquityStats,
    SeriesMetrics,
    calculate_cagr,
    calculate_daily_returns,
    calculate_equity_stats,
    calculate_max_drawdown,
    calculate_pnl,
    calculate_volatility,
    summarize_series,
)

__all__ = [
    "EquityStats",
    "SeriesMetrics",
    "calculate_cagr",
    "calculate_daily_returns",
    "calculate_equity_stats",
    "calculate_max_drawdown",
    "calculate_pnl",
    "calculate_volatility",
    "summarize_series",
]

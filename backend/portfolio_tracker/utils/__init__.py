# backend/portfolio_tracker/utils/__init__.py
"""
Cross-cutting utilities.

- logging: Logging setup with correlation ID support
- context: Request-scoped correlation ID
- date_utils: UTC calendar-day helpers
- symbols: Ticker normalization

Usage:
    from portfolio_tracker.utils import setup_logging
    from portfolio_tracker.utils.date_utils import date_range
"""

from portfolio_tracker.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from portfolio_tracker.utils.logging import setup_logging
from portfolio_tracker.utils.symbols import normalize_symbol

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "normalize_symbol",
]

# backend/portfolio_tracker/services/constants.py
"""
Centralized constants for the Portfolio Tracker services.

Single source of truth for calendar conventions, rounding precision and
cache key namespaces. Tunable runtime values (TTLs, commission) live in
config.Settings instead.

Usage:
    from portfolio_tracker.services.constants import (
        CALENDAR_DAYS_PER_YEAR,
        MONEY_QUANTUM,
    )
"""

from decimal import Decimal


# =============================================================================
# CALENDAR CONSTANTS
# =============================================================================

# Crypto markets trade every day, so both volatility annualization and CAGR
# use calendar days (not the 252 trading days of equity markets)
CALENDAR_DAYS_PER_YEAR: int = 365


# =============================================================================
# ROUNDING
# =============================================================================

# Monetary values (prices, values, P&L) are reported with 2 decimal places
MONEY_QUANTUM: Decimal = Decimal("0.01")

# Holdings quantities are reported with 8 decimal places (satoshi precision)
QUANTITY_QUANTUM: Decimal = Decimal("0.00000001")

# Unit prices keep 8 decimal places so sub-cent tokens do not display as 0.00
PRICE_QUANTUM: Decimal = Decimal("0.00000001")

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")
HUNDRED: Decimal = Decimal("100")

# Price returned for stablecoins regardless of date
STABLECOIN_PRICE: Decimal = Decimal("1")


# =============================================================================
# CACHE KEY NAMESPACES
# =============================================================================

EQUITY_CACHE_PREFIX: str = "equity"
PORTFOLIO_VIEW_CACHE_PREFIX: str = "portfolio"
DCA_CACHE_PREFIX: str = "dca"
PRESET_CACHE_PREFIX: str = "preset"


# =============================================================================
# PORTFOLIO VIEWS
# =============================================================================

POSITION_SORT_FIELDS: tuple[str, ...] = ("value", "symbol", "percent", "pnl")
SORT_ORDERS: tuple[str, ...] = ("asc", "desc")

# backend/portfolio_tracker/utils/rounding.py
"""
Output rounding.

Rounding happens only at output boundaries. Running totals (holdings,
invested capital) are always accumulated unrounded.
"""

from decimal import Decimal, ROUND_HALF_UP

from portfolio_tracker.services.constants import (
    MONEY_QUANTUM,
    PRICE_QUANTUM,
    QUANTITY_QUANTUM,
)


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount or percentage to 2 decimal places."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def round_price(value: Decimal) -> Decimal:
    """Round a unit price to 8 decimal places."""
    return value.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def round_quantity(value: Decimal) -> Decimal:
    """Round a holdings quantity to 8 decimal places."""
    return value.quantize(QUANTITY_QUANTUM, rounding=ROUND_HALF_UP)

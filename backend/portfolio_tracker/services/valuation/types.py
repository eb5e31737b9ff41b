# backend/portfolio_tracker/services/valuation/types.py
"""
Internal data types for the valuation core.

These dataclasses are NOT Pydantic schemas; API serialization lives in
portfolio_tracker/schemas/.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL financial values (never float)
- date (UTC calendar day) for valuation days, aware UTC datetime for trades
- Warnings accumulate for data quality tracking

Type Hierarchy:
    Trade               - One executed buy or sell
    PricePoint          - One daily close observation
    BreakdownEntry      - Holdings, price and value of one symbol on one day
    EquityCurvePoint    - Portfolio value on one day
    ValuationResult     - Points plus warnings from one engine pass
    EquityCurveMetadata - Provenance of a real portfolio's curve
    EquityCurve         - Curve of a real portfolio
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from portfolio_tracker.models import TradeSide
from portfolio_tracker.services.constants import ZERO
from portfolio_tracker.utils.date_utils import to_utc_date
from portfolio_tracker.utils.symbols import MAX_SYMBOL_LENGTH


# =============================================================================
# INPUTS
# =============================================================================


@dataclass(frozen=True)
class Trade:
    """
    A single executed trade.

    Attributes:
        symbol: Normalized uppercase base symbol (e.g. "BTC")
        side: BUY or SELL
        quantity: Units traded, always positive
        price: Execution price per unit in USD, always positive
        timestamp: Execution time; stored as aware UTC
        fee: Informational only, does not affect holdings or invested capital
        exchange: Import source, if known
        source_id: Identifier of the trade at its source (exchange trade id,
            CSV row), if known

    Raises:
        ValueError: On an empty or overlong symbol, or a non-positive
            quantity or price, or a negative fee
    """

    symbol: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    timestamp: datetime
    fee: Decimal = ZERO
    exchange: str | None = None
    source_id: str | None = None

    def __post_init__(self) -> None:
        symbol = (self.symbol or "").strip().upper()
        if not symbol or len(symbol) > MAX_SYMBOL_LENGTH:
            raise ValueError(f"Invalid trade symbol: '{self.symbol}'")
        if self.quantity <= ZERO:
            raise ValueError(f"Trade quantity must be positive, got {self.quantity}")
        if self.price <= ZERO:
            raise ValueError(f"Trade price must be positive, got {self.price}")
        if self.fee < ZERO:
            raise ValueError(f"Trade fee cannot be negative, got {self.fee}")

        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        else:
            timestamp = timestamp.astimezone(timezone.utc)

        object.__setattr__(self, "symbol", symbol)
        object.__setattr__(self, "side", TradeSide(self.side))
        object.__setattr__(self, "timestamp", timestamp)

    @property
    def day(self) -> date:
        """UTC calendar day the trade belongs to."""
        return to_utc_date(self.timestamp)

    @property
    def notional(self) -> Decimal:
        return self.quantity * self.price

    @property
    def signed_quantity(self) -> Decimal:
        """+quantity for BUY, -quantity for SELL."""
        return self.quantity if self.side == TradeSide.BUY else -self.quantity

    @property
    def cash_flow(self) -> Decimal:
        """Change in net invested capital: +notional for BUY, -notional for SELL."""
        return self.notional if self.side == TradeSide.BUY else -self.notional


@dataclass(frozen=True)
class PricePoint:
    """Daily close of a symbol in USD."""

    symbol: str
    day: date
    close: Decimal


# =============================================================================
# OUTPUTS
# =============================================================================


@dataclass(frozen=True)
class BreakdownEntry:
    """
    One symbol's contribution to a day's value.

    holdings is rounded to 8 decimal places, price and value to 2.
    """

    holdings: Decimal
    price: Decimal
    value: Decimal


@dataclass(frozen=True)
class EquityCurvePoint:
    """
    Portfolio value on one UTC day.

    total_value equals the sum of breakdown values. invested is the net
    capital committed up to and including this day.
    """

    day: date
    total_value: Decimal
    breakdown: dict[str, BreakdownEntry]
    invested: Decimal = ZERO


@dataclass(frozen=True)
class ValuationResult:
    """Output of a single ValuationEngine pass."""

    points: list[EquityCurvePoint]
    warnings: list[str] = field(default_factory=list)

    @property
    def values(self) -> list[Decimal]:
        return [point.total_value for point in self.points]

    @property
    def last(self) -> EquityCurvePoint | None:
        return self.points[-1] if self.points else None


@dataclass(frozen=True)
class EquityCurveMetadata:
    """
    Provenance of a portfolio's equity curve.

    Attributes:
        first_trade_date: Timestamp of the earliest trade (None if no trades)
        total_trades: Number of trades replayed
        symbols: Symbols valued (zero-balance stablecoins excluded)
        warnings: Data gaps found while valuing
        cached: True when served from the cache
        cached_at: When the cached copy was computed
        note: Explanation for an empty curve
    """

    first_trade_date: datetime | None
    total_trades: int
    symbols: list[str]
    warnings: list[str] = field(default_factory=list)
    cached: bool = False
    cached_at: datetime | None = None
    note: str | None = None


@dataclass(frozen=True)
class EquityCurve:
    """Equity curve of a real portfolio."""

    portfolio_id: int
    points: list[EquityCurvePoint]
    metadata: EquityCurveMetadata
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

# backend/portfolio_tracker/services/simulation/strategies.py
"""
Holdings schedules for simulated strategies.

Each strategy is a HoldingsSchedule, so the ValuationEngine values it
exactly like a real portfolio:

    DCASchedule         - Fixed amount every N days, split by allocation
    HODLSchedule        - The whole amount on the first day, then hold
    RebalancedSchedule  - Initial capital at target weights, optionally
                          rebalanced back to the weights every day

Purchases buy amount × (1 - commission) / price of each asset, using the
LOCF price on the purchase day. An asset without a price that day is
skipped with a warning; the amount still counts as invested.
"""

from collections.abc import Mapping, Sequence
from datetime import date, timedelta
from decimal import Decimal

from portfolio_tracker.services.constants import HUNDRED, ONE, ZERO
from portfolio_tracker.services.exceptions import ValidationError
from portfolio_tracker.services.valuation.holdings import HoldingsSchedule
from portfolio_tracker.services.valuation.price_resolver import PriceResolver


def purchase_dates(start_date: date, end_date: date, interval: int) -> list[date]:
    """
    Purchase days start, start + interval, ... up to end (inclusive).

    Example:
        >>> purchase_dates(date(2024, 1, 1), date(2024, 1, 28), 7)
        [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]

    Raises:
        ValidationError: If interval is not positive
    """
    if interval <= 0:
        raise ValidationError("Interval must be a positive number of days", field="interval")

    span = (end_date - start_date).days
    return [start_date + timedelta(days=offset) for offset in range(0, span + 1, interval)]


def _validate_allocation(allocation: Mapping[str, Decimal]) -> dict[str, Decimal]:
    if not allocation:
        raise ValidationError("Allocation must contain at least one asset", field="allocation")
    if any(percent < ZERO for percent in allocation.values()):
        raise ValidationError("Allocation percentages cannot be negative", field="allocation")
    if sum(allocation.values(), ZERO) != HUNDRED:
        raise ValidationError("Allocation percentages must sum to 100", field="allocation")
    return {symbol.upper(): Decimal(percent) for symbol, percent in allocation.items()}


class DCASchedule(HoldingsSchedule):
    """
    Dollar-cost averaging: buy a fixed amount on every purchase day.

    Args:
        allocation: Percent of each purchase per symbol, summing to 100
            (e.g. {"BTC": 70, "ETH": 30})
        amount: USD spent per purchase day
        purchase_days: Ascending purchase days
        resolver: Prices used to execute purchases
        commission_rate: Fraction of each purchase lost to fees
    """

    def __init__(
            self,
            allocation: Mapping[str, Decimal],
            amount: Decimal,
            purchase_days: Sequence[date],
            resolver: PriceResolver,
            commission_rate: Decimal = ZERO,
    ):
        super().__init__()
        if amount <= ZERO:
            raise ValidationError("Amount must be positive", field="amount")
        self._allocation = _validate_allocation(allocation)
        self._amount = amount
        self._purchase_days = list(purchase_days)
        self._resolver = resolver
        self._net_rate = ONE - commission_rate
        self._next_purchase = 0
        self._holdings = {symbol: ZERO for symbol in self._allocation}

    @property
    def symbols(self) -> list[str]:
        return list(self._allocation)

    @property
    def purchase_count(self) -> int:
        return len(self._purchase_days)

    def _advance_to(self, day: date) -> None:
        while (
                self._next_purchase < len(self._purchase_days)
                and self._purchase_days[self._next_purchase] <= day
        ):
            self._buy(self._purchase_days[self._next_purchase])
            self._next_purchase += 1

    def _buy(self, day: date) -> None:
        self._invested += self._amount
        for symbol, percent in self._allocation.items():
            if percent == ZERO:
                continue
            price = self._resolver.price_on(symbol, day)
            if price <= ZERO:
                self.warnings.append(f"Skipped {symbol} purchase on {day.isoformat()}: no price data")
                continue
            spend = self._amount * percent / HUNDRED
            self._holdings[symbol] += spend * self._net_rate / price


class HODLSchedule(DCASchedule):
    """
    Buy and hold: the whole amount is invested on the start day.

    Equivalent to a DCA schedule with a single purchase.
    """

    def __init__(
            self,
            allocation: Mapping[str, Decimal],
            amount: Decimal,
            start_date: date,
            resolver: PriceResolver,
            commission_rate: Decimal = ZERO,
    ):
        super().__init__(allocation, amount, [start_date], resolver, commission_rate)


class RebalancedSchedule(HoldingsSchedule):
    """
    A fixed-weight portfolio funded once with initial capital.

    On the start day the capital is split by weight. With rebalance=True,
    every later day the portfolio is valued at that day's prices and each
    holding is reset to total × weight / price. With rebalance=False the
    initial holdings are simply held.

    Invested capital is the initial capital throughout.
    """

    def __init__(
            self,
            weights: Mapping[str, Decimal],
            initial_capital: Decimal,
            start_date: date,
            resolver: PriceResolver,
            rebalance: bool = True,
            commission_rate: Decimal = ZERO,
    ):
        super().__init__()
        if initial_capital <= ZERO:
            raise ValidationError("Initial capital must be positive", field="initial_capital")
        self._weights = _validate_allocation(weights)
        self._initial_capital = initial_capital
        self._start_date = start_date
        self._resolver = resolver
        self._rebalance = rebalance
        self._net_rate = ONE - commission_rate
        self._funded = False
        self._holdings = {symbol: ZERO for symbol in self._weights}

    @property
    def symbols(self) -> list[str]:
        return list(self._weights)

    def _advance_to(self, day: date) -> None:
        if day < self._start_date:
            return
        if not self._funded:
            self._fund()
            self._funded = True
            if day == self._start_date:
                return
        if self._rebalance:
            self._rebalance_on(day)

    def _fund(self) -> None:
        day = self._start_date
        self._invested = self._initial_capital
        for symbol, weight in self._weights.items():
            if weight == ZERO:
                continue
            price = self._resolver.price_on(symbol, day)
            if price <= ZERO:
                self.warnings.append(f"No start price for {symbol} on {day.isoformat()}")
                continue
            allocation = self._initial_capital * weight / HUNDRED
            self._holdings[symbol] = allocation * self._net_rate / price

    def _rebalance_on(self, day: date) -> None:
        prices = {symbol: self._resolver.price_on(symbol, day) for symbol in self._weights}
        total = sum(
            (self._holdings[symbol] * prices[symbol] for symbol in self._weights),
            ZERO,
        )
        if total <= ZERO:
            return
        for symbol, weight in self._weights.items():
            if prices[symbol] > ZERO:
                self._holdings[symbol] = total * weight / HUNDRED / prices[symbol]

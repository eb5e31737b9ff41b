# backend/portfolio_tracker/services/valuation/holdings.py
"""
Holdings schedules: what is held on each day.

A HoldingsSchedule is the single input the ValuationEngine needs besides
prices. Real portfolios replay their trade log (TradeReplaySchedule);
simulated strategies (see services/simulation/strategies.py) generate
holdings from a purchase plan. The engine treats both identically.

Schedules are forward-only: days must be requested in non-decreasing
order and each schedule serves a single pass. This keeps a full replay at
O(N + D) for N trades and D days, since the trade index never rewinds.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from portfolio_tracker.services.constants import ZERO
from portfolio_tracker.services.valuation.types import Trade


class HoldingsSchedule(ABC):
    """
    Holdings and invested capital per day, queried in order.

    Subclasses implement _advance_to(day), which applies every event on or
    before day. Calling holdings_at() and invested_at() for the same day
    is cheap; asking for an earlier day than the last one raises.
    """

    def __init__(self) -> None:
        self._current_day: date | None = None
        self._holdings: dict[str, Decimal] = {}
        self._invested: Decimal = ZERO
        self.warnings: list[str] = []

    @property
    @abstractmethod
    def symbols(self) -> list[str]:
        """Every symbol this schedule can ever hold, in display order."""

    @abstractmethod
    def _advance_to(self, day: date) -> None:
        """Apply all events on or before day."""

    def holdings_at(self, day: date) -> dict[str, Decimal]:
        """Quantity held per symbol at the end of day."""
        self._move_to(day)
        return dict(self._holdings)

    def invested_at(self, day: date) -> Decimal:
        """Net capital committed up to and including day."""
        self._move_to(day)
        return self._invested

    def _move_to(self, day: date) -> None:
        if self._current_day is not None:
            if day < self._current_day:
                raise ValueError(
                    f"Holdings schedule cannot rewind from {self._current_day} to {day}"
                )
            if day == self._current_day:
                return
        self._advance_to(day)
        self._current_day = day


class TradeReplaySchedule(HoldingsSchedule):
    """
    Holdings of a real portfolio, rebuilt from its trade log.

    BUY adds quantity and quantity × price to invested; SELL subtracts
    both. Trades are applied on their UTC day. Trades sharing a timestamp
    keep their input order (the sort is stable).

    Holdings on the first requested day include every trade on or before
    it, so a range starting after the first trade opens with the correct
    position.
    """

    def __init__(self, trades: Iterable[Trade]):
        super().__init__()
        self._trades = sorted(trades, key=lambda t: t.timestamp)
        self._index = 0
        self._symbols = sorted({t.symbol for t in self._trades})
        self._holdings = {symbol: ZERO for symbol in self._symbols}

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    @property
    def trades(self) -> list[Trade]:
        """Trades in replay order."""
        return list(self._trades)

    def _advance_to(self, day: date) -> None:
        trades = self._trades
        while self._index < len(trades) and trades[self._index].day <= day:
            trade = trades[self._index]
            self._holdings[trade.symbol] += trade.signed_quantity
            self._invested += trade.cash_flow
            self._index += 1

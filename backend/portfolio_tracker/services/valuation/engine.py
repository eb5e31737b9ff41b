# backend/portfolio_tracker/services/valuation/engine.py
"""
The valuation engine.

One algorithm values everything: real portfolios, DCA, HODL and preset
portfolios. It walks the requested days in order, asks the holdings
schedule what is held, prices each symbol with the resolver and emits one
EquityCurvePoint per day.

Failure policy:
    A held, non-stablecoin symbol without a resolvable price contributes 0
    that day and adds a warning. The curve is never aborted for a gap.
"""

import logging
from collections.abc import Sequence
from datetime import date

from portfolio_tracker.services.constants import ZERO
from portfolio_tracker.services.valuation.holdings import HoldingsSchedule
from portfolio_tracker.services.valuation.price_resolver import PriceResolver
from portfolio_tracker.services.valuation.types import (
    BreakdownEntry,
    EquityCurvePoint,
    ValuationResult,
)
from portfolio_tracker.utils.rounding import round_money, round_price, round_quantity

logger = logging.getLogger(__name__)


def missing_price_warning(symbol: str, day: date) -> str:
    return f"No price data for {symbol} on {day.isoformat()}"


class ValuationEngine:
    """
    Turns a holdings schedule and a price resolver into a value series.

    Stateless; a single instance can be shared. The schedule is consumed
    by the pass and must not be reused.
    """

    def valuate(
            self,
            schedule: HoldingsSchedule,
            resolver: PriceResolver,
            days: Sequence[date],
    ) -> ValuationResult:
        """
        Value the schedule on each day.

        Args:
            schedule: Holdings per day (queried in order of days)
            resolver: Preloaded prices
            days: Contiguous ascending UTC days

        Returns:
            ValuationResult with one point per day. Each point's total_value
            is the sum of its rounded breakdown values.
        """
        symbols = schedule.symbols
        points: list[EquityCurvePoint] = []
        warnings: list[str] = []

        for day in days:
            holdings = schedule.holdings_at(day)
            invested = schedule.invested_at(day)

            total = ZERO
            breakdown: dict[str, BreakdownEntry] = {}
            for symbol in symbols:
                quantity = holdings.get(symbol, ZERO)
                price = resolver.price_on(symbol, day)

                if quantity == ZERO:
                    breakdown[symbol] = BreakdownEntry(
                        holdings=ZERO, price=round_price(price), value=ZERO,
                    )
                    continue

                if price == ZERO and not resolver.is_stablecoin(symbol):
                    warnings.append(missing_price_warning(symbol, day))

                value = round_money(quantity * price)
                total += value
                breakdown[symbol] = BreakdownEntry(
                    holdings=round_quantity(quantity),
                    price=round_price(price),
                    value=value,
                )

            points.append(EquityCurvePoint(
                day=day,
                total_value=round_money(total),
                breakdown=breakdown,
                invested=round_money(invested),
            ))

        warnings.extend(schedule.warnings)
        if warnings:
            logger.debug(f"Valuation produced {len(warnings)} warnings over {len(points)} days")

        return ValuationResult(points=points, warnings=warnings)

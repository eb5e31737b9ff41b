# backend/portfolio_tracker/services/analytics/metrics.py
"""
Return and risk metrics over a daily value series.

Pure, stateless functions used by the simulation service (DCA, HODL and
preset results), the equity stats endpoint and the portfolio summary.

All arithmetic stays in Decimal; results are percentages (12.5 = 12.5%)
rounded to 2 places only in summarize_series() and calculate_equity_stats().

Formulas:
    P&L          = final_value - invested
    P&L %        = P&L / invested × 100              (0 when invested <= 0)

    Max Drawdown = max over t of (peak_t - V_t) / peak_t × 100
                   peak_t = running maximum of V up to t

    Daily return = V_t / V_(t-1) - 1                 (skipped when V_(t-1) <= 0)
    Volatility   = population std(daily returns) × √365 × 100
                   (0 with fewer than 2 returns)

    CAGR         = ((end / start) ^ (1 / years) - 1) × 100
                   (0 when start <= 0 or years <= 0; -100 when end <= 0)
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from portfolio_tracker.services.constants import (
    CALENDAR_DAYS_PER_YEAR,
    HUNDRED,
    ONE,
    ZERO,
)
from portfolio_tracker.services.valuation.types import EquityCurvePoint
from portfolio_tracker.utils.rounding import round_money


# Volatility needs at least two returns to be meaningful
MIN_RETURNS_FOR_VOLATILITY = 2


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class SeriesMetrics:
    """
    Summary metrics of a strategy's value series.

    All percentages are rounded to 2 decimal places.
    """

    total_value: Decimal
    total_invested: Decimal
    pnl: Decimal
    pnl_percent: Decimal
    max_drawdown: Decimal
    volatility: Decimal
    cagr: Decimal


@dataclass(frozen=True)
class EquityStats:
    """Descriptive statistics of an equity curve."""

    start_value: Decimal
    end_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    max_value: Decimal
    min_value: Decimal
    avg_value: Decimal
    max_drawdown: Decimal
    days: int


# =============================================================================
# RETURNS
# =============================================================================


def calculate_pnl(final_value: Decimal, invested: Decimal) -> tuple[Decimal, Decimal]:
    """
    Absolute and percentage profit or loss.

    Returns:
        (pnl, pnl_percent); pnl_percent is 0 when nothing was invested
    """
    pnl = final_value - invested
    if invested <= ZERO:
        return pnl, ZERO
    return pnl, pnl / invested * HUNDRED


def calculate_daily_returns(values: Sequence[Decimal]) -> list[Decimal]:
    """
    Simple day-over-day returns.

    A day whose previous value is zero or negative has no defined return and
    is skipped, so the result can be shorter than len(values) - 1.
    """
    returns = []
    for i in range(1, len(values)):
        previous = values[i - 1]
        if previous <= ZERO:
            continue
        returns.append(values[i] / previous - ONE)
    return returns


def calculate_cagr(start_value: Decimal, end_value: Decimal, years: Decimal) -> Decimal:
    """
    Compound annual growth rate as a percentage.

    Uses Decimal.__pow__() with a non-integer exponent, so very short
    periods with large ratios do not overflow the way floats would.

    Example:
        >>> calculate_cagr(Decimal("100"), Decimal("200"), Decimal("1"))
        Decimal('100')
    """
    if start_value <= ZERO or years <= ZERO:
        return ZERO
    if end_value <= ZERO:
        return -HUNDRED

    ratio = end_value / start_value
    return (ratio ** (ONE / years) - ONE) * HUNDRED


# =============================================================================
# RISK
# =============================================================================


def calculate_max_drawdown(values: Sequence[Decimal]) -> Decimal:
    """
    Largest peak-to-trough decline as a percentage of the peak.

    Values before the series first turns positive cannot define a peak and
    are ignored. Returns 0 for monotonically non-decreasing series.
    """
    peak = ZERO
    max_drawdown = ZERO
    for value in values:
        if value > peak:
            peak = value
            continue
        if peak > ZERO:
            drawdown = (peak - value) / peak * HUNDRED
            if drawdown > max_drawdown:
                max_drawdown = drawdown
    return max_drawdown


def calculate_volatility(daily_returns: Sequence[Decimal]) -> Decimal:
    """
    Annualized volatility as a percentage.

    Population standard deviation of daily returns scaled by √365 (crypto
    trades every calendar day).
    """
    if len(daily_returns) < MIN_RETURNS_FOR_VOLATILITY:
        return ZERO

    n = Decimal(len(daily_returns))
    mean = sum(daily_returns, ZERO) / n
    variance = sum(((r - mean) ** 2 for r in daily_returns), ZERO) / n
    annualization = Decimal(CALENDAR_DAYS_PER_YEAR).sqrt()
    return variance.sqrt() * annualization * HUNDRED


# =============================================================================
# AGGREGATES
# =============================================================================


def summarize_series(values: Sequence[Decimal], invested: Decimal) -> SeriesMetrics:
    """
    Metrics of a simulated strategy.

    CAGR compounds invested capital into the final value over
    len(values) / 365 years.

    Args:
        values: Daily total values, one per calendar day
        invested: Capital committed by the end of the series
    """
    final_value = values[-1] if values else ZERO
    pnl, pnl_percent = calculate_pnl(final_value, invested)
    years = Decimal(len(values)) / Decimal(CALENDAR_DAYS_PER_YEAR)

    return SeriesMetrics(
        total_value=round_money(final_value),
        total_invested=round_money(invested),
        pnl=round_money(pnl),
        pnl_percent=round_money(pnl_percent),
        max_drawdown=round_money(calculate_max_drawdown(values)),
        volatility=round_money(calculate_volatility(calculate_daily_returns(values))),
        cagr=round_money(calculate_cagr(invested, final_value, years)),
    )


def calculate_equity_stats(points: Sequence[EquityCurvePoint]) -> EquityStats | None:
    """
    Descriptive statistics of an equity curve.

    Returns:
        EquityStats, or None for an empty curve
    """
    if not points:
        return None

    values = [point.total_value for point in points]
    start_value = values[0]
    end_value = values[-1]
    total_return = end_value - start_value
    total_return_percent = total_return / start_value * HUNDRED if start_value > ZERO else ZERO

    return EquityStats(
        start_value=round_money(start_value),
        end_value=round_money(end_value),
        total_return=round_money(total_return),
        total_return_percent=round_money(total_return_percent),
        max_value=round_money(max(values)),
        min_value=round_money(min(values)),
        avg_value=round_money(sum(values, ZERO) / Decimal(len(values))),
        max_drawdown=round_money(calculate_max_drawdown(values)),
        days=len(values),
    )

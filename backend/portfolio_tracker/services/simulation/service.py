# backend/portfolio_tracker/services/simulation/service.py
"""
Simulation Service orchestrator.

Runs strategy backtests on historical prices:
- DCA vs HODL for a single asset or a two-asset pair ("70/30")
- Preset model portfolios (see presets.py)

Every strategy is a HoldingsSchedule valued by the same ValuationEngine
that values real portfolios, so a simulated and a real portfolio holding
the same quantities get the same value on the same day.

Results are cached in the shared tier (Redis when configured) as JSON,
serialized with pydantic's TypeAdapter.

Usage:
    service = SimulationService(price_source)

    result = service.run_dca_simulation(
        start_date="2024-01-01",
        end_date="2024-12-31",
        amount=100,
        interval=7,
        asset="BTC",
    )

    preset = service.get_preset("BTC_70_ETH_30", "2024-01-01", "2024-12-31")
"""

import logging
import re
from collections.abc import Callable
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from pydantic import TypeAdapter

from portfolio_tracker.config import settings
from portfolio_tracker.services.analytics.metrics import summarize_series
from portfolio_tracker.services.cache import CacheKeys, TTLCache
from portfolio_tracker.services.constants import HUNDRED, ZERO
from portfolio_tracker.services.exceptions import NoPriceDataError, ValidationError
from portfolio_tracker.services.protocols import CacheBackend, PriceSource, StablecoinPolicy
from portfolio_tracker.services.simulation.presets import PRESETS, get_preset_definition
from portfolio_tracker.services.simulation.strategies import (
    DCASchedule,
    HODLSchedule,
    RebalancedSchedule,
    purchase_dates,
)
from portfolio_tracker.services.simulation.types import (
    DCADailyPoint,
    DCASimulationResult,
    PresetHolding,
    PresetResult,
)
from portfolio_tracker.services.valuation.engine import ValuationEngine
from portfolio_tracker.services.valuation.price_resolver import (
    PriceResolver,
    StablecoinSet,
    fetch_price_histories,
)
from portfolio_tracker.utils.date_utils import (
    date_range,
    parse_iso_date,
    utc_today,
    validate_date_range,
    validate_range_size,
)
from portfolio_tracker.utils.rounding import round_money
from portfolio_tracker.utils.symbols import normalize_symbol

logger = logging.getLogger(__name__)

_PAIR_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)\s*$")

# Simulation results are only ever cached in full, so a small local
# fallback is enough when no shared cache is injected
_LOCAL_CACHE_MAX_ENTRIES = 500

_DCA_ADAPTER = TypeAdapter(DCASimulationResult)
_PRESET_ADAPTER = TypeAdapter(PresetResult)


def parse_pair(pair: str, assets: tuple[str, str]) -> dict[str, Decimal]:
    """
    Turn "70/30" into {"BTC": 70, "ETH": 30} for the configured pair assets.

    Raises:
        ValidationError: If the ratio is malformed or does not sum to 100
    """
    match = _PAIR_PATTERN.match(pair)
    if match is None:
        raise ValidationError(f"Invalid pair ratio: '{pair}'. Use e.g. '70/30'", field="pair")
    first, second = Decimal(match.group(1)), Decimal(match.group(2))
    if first + second != HUNDRED:
        raise ValidationError(f"Pair ratio {pair} must sum to 100", field="pair")
    return {assets[0]: first, assets[1]: second}


def frequency_label(interval: int) -> str:
    if interval == 1:
        return "daily"
    if interval == 7:
        return "weekly"
    return f"every {interval} days"


class SimulationService:
    """
    DCA, HODL and preset portfolio simulations.

    Stateless apart from the cache; safe to share between requests.
    """

    def __init__(
            self,
            price_source: PriceSource,
            cache: CacheBackend | None = None,
            stablecoin_policy: StablecoinPolicy | None = None,
            engine: ValuationEngine | None = None,
            today: Callable[[], date] = utc_today,
            commission_rate: Decimal | None = None,
            preset_initial_capital: Decimal | None = None,
            preset_commission_rate: Decimal | None = None,
            lookback_days: int | None = None,
            fetch_workers: int | None = None,
            cache_ttl_seconds: int | None = None,
            max_range_days: int | None = None,
    ):
        self._price_source = price_source
        self._cache_ttl = cache_ttl_seconds or settings.simulation_cache_ttl_seconds
        self._cache = cache if cache is not None else TTLCache(
            ttl_seconds=self._cache_ttl,
            max_entries=_LOCAL_CACHE_MAX_ENTRIES,
            name="simulation-cache",
        )
        self._stablecoins = stablecoin_policy or StablecoinSet()
        self._engine = engine or ValuationEngine()
        self._today = today
        self._commission_rate = settings.commission_rate if commission_rate is None else commission_rate
        self._initial_capital = preset_initial_capital or settings.preset_initial_capital
        self._preset_commission_rate = (
            settings.preset_commission_rate if preset_commission_rate is None else preset_commission_rate
        )
        self._lookback_days = settings.price_lookback_days if lookback_days is None else lookback_days
        self._fetch_workers = fetch_workers or settings.price_fetch_workers
        self._max_range_days = max_range_days or settings.max_range_days

    # =========================================================================
    # DCA
    # =========================================================================

    def run_dca_simulation(
            self,
            start_date: date | str,
            end_date: date | str,
            amount: Decimal | int | str,
            interval: int,
            asset: str = "BTC",
            pair: str | None = None,
    ) -> DCASimulationResult:
        """
        Compare DCA with HODL over a date range.

        DCA buys `amount` every `interval` days starting on start_date. HODL
        invests amount × purchase count on start_date. Both pay the
        configured commission on every purchase.

        With `pair` set (e.g. "70/30"), every purchase is split between the
        configured pair assets and `asset` is ignored.

        Raises:
            ValidationError: Malformed input or a range longer than MAX_RANGE_DAYS
            InvalidRangeError: Reversed range or start in the future
            NoPriceDataError: A required asset has no prices in range
        """
        start = parse_iso_date(start_date, "start_date")
        end = parse_iso_date(end_date, "end_date")
        validate_date_range(start, end, self._today())
        validate_range_size(start, end, self._max_range_days)
        amount = self._parse_amount(amount)
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            raise ValidationError("Interval must be a positive number of days", field="interval")

        pair = pair.replace(" ", "") if pair else None
        if pair:
            allocation = parse_pair(pair, settings.pair_assets)
            label = f"{'/'.join(allocation)} {pair}"
        else:
            symbol = normalize_symbol(asset)
            if symbol not in settings.simulation_assets:
                raise ValidationError(
                    f"Unsupported asset: {asset}. Supported: {', '.join(settings.simulation_assets)}",
                    field="asset",
                )
            allocation = {symbol: HUNDRED}
            label = symbol

        # A pair ignores `asset`, so every pair request shares one key space
        cache_key = CacheKeys.dca("PAIR" if pair else label, start, end, amount, interval, pair)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug(f"DCA simulation served from cache: {cache_key}")
            return replace(_DCA_ADAPTER.validate_python(cached), cached=True)

        resolver = self._load_prices(list(allocation), start, end)
        days = date_range(start, end)
        purchases = purchase_dates(start, end, interval)

        dca = DCASchedule(allocation, amount, purchases, resolver, self._commission_rate)
        hodl = HODLSchedule(allocation, amount * len(purchases), start, resolver, self._commission_rate)
        dca_result = self._engine.valuate(dca, resolver, days)
        hodl_result = self._engine.valuate(hodl, resolver, days)

        daily_data = [
            DCADailyPoint(
                day=dca_point.day,
                invested=dca_point.invested,
                dca_value=dca_point.total_value,
                dca_holdings={s: entry.holdings for s, entry in dca_point.breakdown.items()},
                hodl_value=hodl_point.total_value,
                hodl_holdings={s: entry.holdings for s, entry in hodl_point.breakdown.items()},
            )
            for dca_point, hodl_point in zip(dca_result.points, hodl_result.points)
        ]

        result = DCASimulationResult(
            asset=label,
            allocation=allocation,
            start_date=start,
            end_date=end,
            amount=amount,
            interval=interval,
            frequency=frequency_label(interval),
            purchase_count=len(purchases),
            dca=summarize_series(dca_result.values, dca_result.last.invested),
            hodl=summarize_series(hodl_result.values, hodl_result.last.invested),
            daily_data=daily_data,
            warnings=_dedupe(dca_result.warnings + hodl_result.warnings),
        )

        logger.info(
            f"DCA simulation {label}: {len(purchases)} purchases over {len(days)} days",
            extra={"asset": label, "purchases": len(purchases)},
        )
        self._cache.set(cache_key, _DCA_ADAPTER.dump_python(result, mode="json"), self._cache_ttl)
        return result

    # =========================================================================
    # PRESETS
    # =========================================================================

    def get_preset(
            self,
            preset_name: str,
            start_date: date | str,
            end_date: date | str,
    ) -> PresetResult:
        """
        Value a preset portfolio over a range.

        Raises:
            PresetNotFoundError: Unknown preset
            ValidationError: Malformed dates or a range longer than MAX_RANGE_DAYS
            InvalidRangeError: Reversed range or start in the future
            NoPriceDataError: A preset asset has no prices in range
        """
        definition = get_preset_definition(preset_name)
        start = parse_iso_date(start_date, "start_date")
        end = parse_iso_date(end_date, "end_date")
        validate_date_range(start, end, self._today())
        validate_range_size(start, end, self._max_range_days)

        cache_key = CacheKeys.preset(definition.key, start, end)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Preset served from cache: {cache_key}")
            return replace(_PRESET_ADAPTER.validate_python(cached), cached=True)

        resolver = self._load_prices(definition.symbols, start, end)
        days = date_range(start, end)
        schedule = RebalancedSchedule(
            definition.weights,
            self._initial_capital,
            start,
            resolver,
            rebalance=definition.rebalance,
            commission_rate=self._preset_commission_rate,
        )
        valuation = self._engine.valuate(schedule, resolver, days)
        last = valuation.last

        allocation = [
            PresetHolding(
                symbol=symbol,
                target_percent=target,
                holdings=last.breakdown[symbol].holdings,
                value=last.breakdown[symbol].value,
                current_percent=(
                    round_money(last.breakdown[symbol].value / last.total_value * HUNDRED)
                    if last.total_value > ZERO else ZERO
                ),
            )
            for symbol, target in definition.weights.items()
        ]

        result = PresetResult(
            preset=definition.key,
            name=definition.name,
            description=definition.description,
            rebalance=definition.rebalance,
            start_date=start,
            end_date=end,
            initial_capital=self._initial_capital,
            metrics=summarize_series(valuation.values, self._initial_capital),
            allocation=allocation,
            daily_data=valuation.points,
            warnings=_dedupe(valuation.warnings),
        )

        logger.info(
            f"Preset {definition.key} valued over {len(days)} days",
            extra={"preset": definition.key},
        )
        self._cache.set(cache_key, _PRESET_ADAPTER.dump_python(result, mode="json"), self._cache_ttl)
        return result

    def get_all_presets(self, start_date: date | str, end_date: date | str) -> list[PresetResult]:
        """Every preset over the same range, in definition order."""
        return [self.get_preset(key, start_date, end_date) for key in PRESETS]

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load_prices(self, symbols: list[str], start_date: date, end_date: date) -> PriceResolver:
        """
        Fetch histories for the strategy's assets.

        Raises:
            NoPriceDataError: If any non-stablecoin asset has no observations
        """
        priced = [s for s in symbols if not self._stablecoins.is_stablecoin(s)]
        histories = fetch_price_histories(
            self._price_source,
            priced,
            start_date - timedelta(days=self._lookback_days),
            end_date,
            max_workers=self._fetch_workers,
        )
        resolver = PriceResolver(self._stablecoins)
        for symbol in priced:
            points = histories.get(symbol, [])
            if not points:
                raise NoPriceDataError(symbol)
            resolver.add_history(symbol, points)
        return resolver

    @staticmethod
    def _parse_amount(amount: Decimal | int | str) -> Decimal:
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError(f"Invalid amount: '{amount}'", field="amount")
        if not value.is_finite() or value <= ZERO:
            raise ValidationError("Amount must be a positive number", field="amount")
        return value


def _dedupe(warnings: list[str]) -> list[str]:
    return list(dict.fromkeys(warnings))

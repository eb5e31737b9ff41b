# backend/tests/services/test_simulation_service.py
"""
Tests for SimulationService.

Test Coverage:
- DCA vs HODL for a single asset and a BTC/ETH pair
- Input validation (amount, interval, asset, pair ratio, dates)
- Hard failure when an asset has no price history
- Preset portfolios
- Result caching (including through a JSON round trip)
"""

import json
from datetime import date
from decimal import Decimal

import pytest

from portfolio_tracker.services.cache import TTLCache
from portfolio_tracker.services.exceptions import (
    InvalidRangeError,
    NoPriceDataError,
    PresetNotFoundError,
    ValidationError,
)
from portfolio_tracker.services.simulation.service import (
    SimulationService,
    frequency_label,
    parse_pair,
)
from tests.conftest import TODAY, days_between

START = date(2024, 1, 1)
END = date(2024, 1, 22)


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(ttl_seconds=600, max_entries=50, clock=clock)


@pytest.fixture
def service(price_source, cache) -> SimulationService:
    return SimulationService(
        price_source=price_source,
        cache=cache,
        today=lambda: TODAY,
        commission_rate=Decimal("0.001"),
        preset_initial_capital=Decimal("10000"),
        preset_commission_rate=Decimal("0"),
        lookback_days=7,
        fetch_workers=1,
    )


@pytest.fixture
def flat_prices(price_source):
    price_source.set_flat_prices("BTC", START, END, "50")
    price_source.set_flat_prices("ETH", START, END, "5")
    return price_source


class TestParsePair:
    """Tests for parse_pair function."""

    def test_valid_ratio(self):
        assert parse_pair("70/30", ("BTC", "ETH")) == {"BTC": Decimal("70"), "ETH": Decimal("30")}

    def test_decimal_ratio(self):
        assert parse_pair("62.5/37.5", ("BTC", "ETH"))["ETH"] == Decimal("37.5")

    @pytest.mark.parametrize("pair", ["70/20", "70-30", "abc", "70/30/0", ""])
    def test_invalid_ratio_rejected(self, pair):
        with pytest.raises(ValidationError) as exc_info:
            parse_pair(pair, ("BTC", "ETH"))

        assert exc_info.value.field == "pair"


class TestFrequencyLabel:

    @pytest.mark.parametrize("interval,label", [(1, "daily"), (7, "weekly"), (14, "every 14 days")])
    def test_labels(self, interval, label):
        assert frequency_label(interval) == label


class TestRunDCASimulation:
    """Tests for single-asset and pair DCA."""

    def test_weekly_example(self, service, flat_prices):
        result = service.run_dca_simulation(START, END, Decimal("100"), 7, asset="BTC")

        assert result.purchase_count == 4
        assert result.frequency == "weekly"
        assert result.dca.total_invested == Decimal("400.00")
        assert result.dca.total_value == Decimal("399.60")
        assert result.dca.pnl == Decimal("-0.40")
        assert result.daily_data[-1].dca_holdings["BTC"] == Decimal("7.992")
        assert result.warnings == []

    def test_hodl_invests_everything_on_start(self, service, flat_prices):
        result = service.run_dca_simulation(START, END, 100, 7)

        first = result.daily_data[0]
        assert first.hodl_holdings["BTC"] == Decimal("7.992")
        assert first.dca_holdings["BTC"] == Decimal("1.998")
        assert first.invested == Decimal("100.00")
        assert result.hodl.total_invested == Decimal("400.00")
        assert result.hodl.total_value == Decimal("399.60")

    def test_one_daily_point_per_day(self, service, flat_prices):
        result = service.run_dca_simulation("2024-01-01", "2024-01-22", "100", 7)

        assert [p.day for p in result.daily_data] == days_between(START, END)

    def test_asset_is_normalized(self, service, flat_prices):
        result = service.run_dca_simulation(START, END, 100, 7, asset="bitcoin")

        assert result.asset == "BTC"
        assert result.allocation == {"BTC": Decimal("100")}

    def test_pair_splits_each_purchase(self, service, flat_prices):
        result = service.run_dca_simulation(START, END, 100, 7, pair="70/30")

        last = result.daily_data[-1]
        assert result.asset == "BTC/ETH 70/30"
        # 4 × 70 × 0.999 / 50 and 4 × 30 × 0.999 / 5
        assert last.dca_holdings["BTC"] == Decimal("5.5944")
        assert last.dca_holdings["ETH"] == Decimal("23.976")
        assert result.dca.total_value == Decimal("399.60")

    def test_pair_with_spaces_is_accepted(self, service, flat_prices):
        result = service.run_dca_simulation(START, END, 100, 7, pair=" 70 / 30 ")

        assert result.asset == "BTC/ETH 70/30"

    def test_gap_in_prices_uses_last_close(self, service, price_source):
        price_source.set_prices("BTC", {START: "50", date(2024, 1, 10): "100"})

        result = service.run_dca_simulation(START, END, 100, 7)

        # Jan 8 buys at the Jan 1 close carried forward
        assert result.daily_data[7].dca_holdings["BTC"] == Decimal("3.996")
        assert result.warnings == []

    @pytest.mark.parametrize("amount", [0, -5, "abc", "NaN"])
    def test_invalid_amount_rejected(self, service, flat_prices, amount):
        with pytest.raises(ValidationError) as exc_info:
            service.run_dca_simulation(START, END, amount, 7)

        assert exc_info.value.field == "amount"

    @pytest.mark.parametrize("interval", [0, -1, True, 1.5])
    def test_invalid_interval_rejected(self, service, flat_prices, interval):
        with pytest.raises(ValidationError) as exc_info:
            service.run_dca_simulation(START, END, 100, interval)

        assert exc_info.value.field == "interval"

    @pytest.mark.parametrize("interval", [3_000_000, 10**9])
    def test_interval_past_last_calendar_day_buys_once(self, service, flat_prices, interval):
        result = service.run_dca_simulation(START, END, 100, interval)

        assert result.purchase_count == 1
        assert result.dca.total_invested == Decimal("100.00")
        assert result.frequency == f"every {interval} days"

    def test_range_longer_than_limit_rejected(self, service, flat_prices):
        with pytest.raises(ValidationError) as exc_info:
            service.run_dca_simulation(START, date(9999, 12, 31), 100, 7)

        assert exc_info.value.field == "end_date"

    def test_unsupported_asset_rejected(self, service, flat_prices):
        with pytest.raises(ValidationError, match="Unsupported asset"):
            service.run_dca_simulation(START, END, 100, 7, asset="DOGE")

    def test_bad_pair_rejected(self, service, flat_prices):
        with pytest.raises(ValidationError, match="sum to 100"):
            service.run_dca_simulation(START, END, 100, 7, pair="60/30")

    def test_reversed_range_rejected(self, service, flat_prices):
        with pytest.raises(InvalidRangeError):
            service.run_dca_simulation(END, START, 100, 7)

    def test_future_start_rejected(self, service, flat_prices):
        with pytest.raises(InvalidRangeError):
            service.run_dca_simulation(date(2024, 7, 1), date(2024, 7, 31), 100, 7)

    def test_no_price_history_is_a_hard_failure(self, service, price_source):
        price_source.set_flat_prices("BTC", START, END, "50")

        with pytest.raises(NoPriceDataError) as exc_info:
            service.run_dca_simulation(START, END, 100, 7, pair="50/50")

        assert exc_info.value.symbol == "ETH"


class TestDCACaching:
    """DCA results are cached by every parameter."""

    def test_second_call_served_from_cache(self, service, flat_prices):
        first = service.run_dca_simulation(START, END, 100, 7)
        requests = len(flat_prices.requests)

        second = service.run_dca_simulation(START, END, Decimal("100.00"), 7)

        assert len(flat_prices.requests) == requests
        assert first.cached is False
        assert second.cached is True
        assert second.dca == first.dca
        assert second.daily_data == first.daily_data

    def test_different_interval_not_shared(self, service, flat_prices):
        service.run_dca_simulation(START, END, 100, 7)

        result = service.run_dca_simulation(START, END, 100, 1)

        assert result.cached is False
        assert result.purchase_count == 22

    def test_pair_ignores_asset_in_key(self, service, flat_prices):
        service.run_dca_simulation(START, END, 100, 7, asset="BTC", pair="70/30")

        result = service.run_dca_simulation(START, END, 100, 7, asset="ETH", pair="70/30")

        assert result.cached is True


class TestPresets:
    """Tests for preset portfolios."""

    @pytest.fixture
    def trending_prices(self, price_source):
        days = days_between(START, END)
        price_source.set_prices("BTC", {day: str(40000 + i * 500) for i, day in enumerate(days)})
        price_source.set_prices("ETH", {day: str(2500 - i * 20) for i, day in enumerate(days)})
        return price_source

    def test_btc_100(self, service, trending_prices):
        result = service.get_preset("BTC_100", START, END)

        assert result.name == "100% BTC"
        assert result.rebalance is False
        assert result.initial_capital == Decimal("10000")
        # 0.25 BTC bought at 40000, worth 0.25 × 50500 on Jan 22
        assert result.allocation[0].holdings == Decimal("0.25")
        assert result.metrics.total_value == Decimal("12625.00")
        assert result.metrics.pnl == Decimal("2625.00")
        assert result.metrics.max_drawdown == Decimal("0.00")

    def test_btc_70_eth_30_keeps_weights(self, service, trending_prices):
        result = service.get_preset("btc_70_eth_30", START, END)

        assert result.preset == "BTC_70_ETH_30"
        assert result.rebalance is True
        percents = {h.symbol: h.current_percent for h in result.allocation}
        assert percents == {"BTC": Decimal("70.00"), "ETH": Decimal("30.00")}
        assert result.metrics.total_invested == Decimal("10000.00")

    def test_daily_data_sums(self, service, trending_prices):
        result = service.get_preset("BTC_70_ETH_30", START, END)

        assert len(result.daily_data) == 22
        for point in result.daily_data:
            assert point.total_value == sum(
                (entry.value for entry in point.breakdown.values()), Decimal("0")
            )

    def test_unknown_preset(self, service, trending_prices):
        with pytest.raises(PresetNotFoundError, match="Unknown preset: MOON"):
            service.get_preset("MOON", START, END)

    def test_all_presets(self, service, trending_prices):
        results = service.get_all_presets(START, END)

        assert [r.preset for r in results] == ["BTC_100", "BTC_70_ETH_30"]

    def test_preset_cached(self, service, trending_prices):
        service.get_preset("BTC_100", START, END)

        assert service.get_preset("BTC_100", START, END).cached is True

    def test_preset_without_history(self, service, price_source):
        with pytest.raises(NoPriceDataError):
            service.get_preset("BTC_100", START, END)

    def test_range_longer_than_limit_rejected(self, service, trending_prices):
        with pytest.raises(ValidationError) as exc_info:
            service.get_preset("BTC_100", START, date.max)

        assert exc_info.value.field == "end_date"


class TestSharedCacheRoundTrip:
    """Results survive the JSON encoding used by the Redis tier."""

    class JsonCache:
        """CacheBackend that stores JSON strings, like RedisCache."""

        def __init__(self):
            self.store: dict[str, str] = {}

        def get(self, key):
            raw = self.store.get(key)
            return json.loads(raw) if raw is not None else None

        def set(self, key, value, ttl_seconds=None):
            self.store[key] = json.dumps(value)

        def delete_prefix(self, prefix):
            keys = [k for k in self.store if k.startswith(prefix)]
            for key in keys:
                del self.store[key]
            return len(keys)

    def test_dca_round_trip(self, price_source):
        price_source.set_flat_prices("BTC", START, END, "50")
        service = SimulationService(price_source, cache=self.JsonCache(), today=lambda: TODAY, fetch_workers=1)

        first = service.run_dca_simulation(START, END, 100, 7)
        second = service.run_dca_simulation(START, END, 100, 7)

        assert second.cached is True
        assert second.dca == first.dca
        assert second.daily_data[-1].day == END
        assert second.daily_data[-1].dca_holdings == first.daily_data[-1].dca_holdings

    def test_preset_round_trip(self, price_source):
        price_source.set_flat_prices("BTC", START, END, "40000")
        price_source.set_flat_prices("ETH", START, END, "2000")
        service = SimulationService(price_source, cache=self.JsonCache(), today=lambda: TODAY, fetch_workers=1)

        first = service.get_preset("BTC_70_ETH_30", START, END)
        second = service.get_preset("BTC_70_ETH_30", START, END)

        assert second.cached is True
        assert second.daily_data == first.daily_data
        assert second.allocation == first.allocation

# backend/tests/services/test_portfolio_views.py
"""
Tests for PortfolioViewsService (summary, allocation, positions).

Sample portfolio valued on 2024-06-30:

    BTC   BUY 0.5 @ 40000, SELL 0.2 @ 45000   0.3 × 48000 = 14400   cost 11000
    ETH   BUY 10 @ 2000                       10 × 2500   = 25000   cost 20000
    USDT  BUY 1000 @ 1                        1000 × 1    =  1000   cost  1000
                                                            40400         32000
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from portfolio_tracker.services.cache import TTLCache
from portfolio_tracker.services.exceptions import PortfolioNotFoundError, ValidationError
from portfolio_tracker.services.portfolio_views import PortfolioViewsService, calculate_cost_basis
from portfolio_tracker.services.valuation.service import EquityCurveService
from tests.conftest import TODAY, make_trade

NOW = datetime(2024, 6, 30, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def shared_cache(clock) -> TTLCache:
    return TTLCache(ttl_seconds=300, max_entries=50, clock=clock, name="shared")


@pytest.fixture
def equity_service(trade_source, price_source, clock, shared_cache) -> EquityCurveService:
    return EquityCurveService(
        trade_source=trade_source,
        price_source=price_source,
        local_cache=TTLCache(ttl_seconds=300, max_entries=10, clock=clock),
        shared_cache=shared_cache,
        today=lambda: TODAY,
        lookback_days=7,
        fetch_workers=1,
    )


@pytest.fixture
def views(equity_service, trade_source, shared_cache) -> PortfolioViewsService:
    return PortfolioViewsService(equity_service, trade_source, shared_cache, clock=lambda: NOW)


@pytest.fixture
def portfolio(trade_source, price_source) -> int:
    trade_source.add_portfolio(1, [
        make_trade("BTC", "BUY", "0.5", "40000", date(2024, 6, 1), exchange="binance"),
        make_trade("USDT", "BUY", "1000", "1", date(2024, 6, 2)),
        make_trade("ETH", "BUY", "10", "2000", date(2024, 6, 5)),
        make_trade("BTC", "SELL", "0.2", "45000", date(2024, 6, 10), exchange="kraken"),
    ])
    price_source.set_prices("BTC", {
        date(2024, 6, 1): "40000",
        date(2024, 6, 10): "45000",
        date(2024, 6, 15): "48000",
    })
    price_source.set_prices("ETH", {date(2024, 6, 5): "2000", date(2024, 6, 20): "2500"})
    return 1


class TestCalculateCostBasis:
    """Tests for calculate_cost_basis function."""

    def test_buys_minus_sells(self):
        basis = calculate_cost_basis([
            make_trade("BTC", "BUY", "0.5", "40000", date(2024, 6, 1)),
            make_trade("BTC", "SELL", "0.2", "45000", date(2024, 6, 10)),
        ])["BTC"]

        assert basis.buy_quantity == Decimal("0.5")
        assert basis.sell_value == Decimal("9000")
        assert basis.cost_basis == Decimal("11000")
        assert basis.average_cost(Decimal("0.3")) == Decimal("11000") / Decimal("0.3")

    def test_entry_date_is_first_buy(self):
        basis = calculate_cost_basis([
            make_trade("ETH", "BUY", "1", "10", date(2024, 3, 1)),
            make_trade("ETH", "BUY", "1", "10", date(2024, 2, 1)),
        ])["ETH"]

        assert basis.entry_date == datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)
        assert basis.trades_count == 2

    def test_average_cost_without_holdings(self):
        basis = calculate_cost_basis([make_trade("BTC")])["BTC"]

        assert basis.average_cost(Decimal("0")) == Decimal("0")

    def test_exchanges_listed_once(self):
        basis = calculate_cost_basis([
            make_trade(exchange="binance"),
            make_trade(exchange="binance"),
            make_trade(exchange="kraken"),
            make_trade(),
        ])["BTC"]

        assert basis.exchanges == ["binance", "kraken"]


class TestSummary:
    """Tests for get_summary."""

    def test_totals(self, views, portfolio):
        summary = views.get_summary(portfolio)

        assert summary.total_value == Decimal("40400.00")
        assert summary.cost_basis == Decimal("32000.00")
        assert summary.pnl.value == Decimal("8400.00")
        assert summary.pnl.percent == Decimal("26.25")
        assert summary.last_updated == NOW
        assert summary.cached is False

    def test_allocation_largest_first(self, views, portfolio):
        summary = views.get_summary(portfolio)

        assert [p.symbol for p in summary.allocation] == ["ETH", "BTC", "USDT"]
        btc = summary.allocation[1]
        assert btc.holdings == Decimal("0.3")
        assert btc.current_price == Decimal("48000.00")
        assert btc.position_value == Decimal("14400.00")
        assert btc.percent_of_portfolio == Decimal("35.64")
        assert btc.pnl.value == Decimal("3400.00")
        assert btc.pnl.percent == Decimal("30.91")

    def test_trade_stats(self, views, portfolio):
        stats = views.get_summary(portfolio).stats

        assert stats.total_trades == 4
        assert stats.first_trade_date == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert stats.last_trade_date == datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)
        assert stats.symbols == ["BTC", "ETH", "USDT"]
        assert stats.exchanges == ["binance", "kraken"]

    def test_key_metrics_from_curve(self, views, portfolio):
        metrics = views.get_summary(portfolio).key_metrics

        assert metrics.volatility_percent > Decimal("0")
        assert metrics.max_drawdown_percent >= Decimal("0")

    def test_empty_portfolio(self, views, trade_source):
        trade_source.add_portfolio(2)

        summary = views.get_summary(2)

        assert summary.total_value == Decimal("0.00")
        assert summary.allocation == []
        assert summary.stats.total_trades == 0

    def test_unknown_portfolio(self, views):
        with pytest.raises(PortfolioNotFoundError):
            views.get_summary(404)


class TestAllocation:
    """Tests for get_allocation."""

    def test_shares_of_total(self, views, portfolio):
        allocation = views.get_allocation(portfolio)

        assert allocation.current_value == Decimal("40400.00")
        assert {a.symbol: a.percent for a in allocation.allocation} == {
            "ETH": Decimal("61.88"),
            "BTC": Decimal("35.64"),
            "USDT": Decimal("2.48"),
        }

    def test_sold_out_symbol_excluded(self, views, trade_source, price_source):
        trade_source.add_portfolio(3, [
            make_trade("BTC", "BUY", "1", "100", date(2024, 6, 1)),
            make_trade("ETH", "BUY", "1", "10", date(2024, 6, 1)),
            make_trade("ETH", "SELL", "1", "12", date(2024, 6, 2)),
        ])
        price_source.set_prices("BTC", {date(2024, 6, 1): "100"})
        price_source.set_prices("ETH", {date(2024, 6, 1): "10"})

        allocation = views.get_allocation(3)

        assert [a.symbol for a in allocation.allocation] == ["BTC"]
        assert allocation.allocation[0].percent == Decimal("100.00")


class TestPositions:
    """Tests for get_positions."""

    def test_position_details(self, views, portfolio):
        positions = views.get_positions(portfolio)
        btc = next(p for p in positions.positions if p.symbol == "BTC")

        assert btc.avg_cost == Decimal("36666.66666667")
        assert btc.cost_value == Decimal("11000.00")
        assert btc.entry_date == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert btc.trades_count == 2
        assert btc.exchange_sources == ["binance", "kraken"]

    def test_default_sort_is_value_desc(self, views, portfolio):
        positions = views.get_positions(portfolio)

        assert [p.symbol for p in positions.positions] == ["ETH", "BTC", "USDT"]

    def test_sort_by_pnl_ascending(self, views, portfolio):
        positions = views.get_positions(portfolio, sort_by="pnl", order="asc")

        assert [p.symbol for p in positions.positions] == ["USDT", "BTC", "ETH"]

    def test_sort_by_symbol(self, views, portfolio):
        positions = views.get_positions(portfolio, sort_by="SYMBOL", order="ASC")

        assert [p.symbol for p in positions.positions] == ["BTC", "ETH", "USDT"]

    def test_summary_block(self, views, portfolio):
        summary = views.get_positions(portfolio).summary

        assert summary.total_positions == 3
        assert summary.winning_positions == 2
        assert summary.losing_positions == 0
        assert summary.total_pnl == Decimal("8400.00")
        assert summary.total_roi == Decimal("20.79")

    def test_invalid_sort_field(self, views, portfolio):
        with pytest.raises(ValidationError) as exc_info:
            views.get_positions(portfolio, sort_by="volume")

        assert exc_info.value.field == "sort_by"

    def test_invalid_order(self, views, portfolio):
        with pytest.raises(ValidationError) as exc_info:
            views.get_positions(portfolio, order="sideways")

        assert exc_info.value.field == "order"


class TestViewCaching:
    """Views are cached in the shared tier and dropped with the portfolio."""

    def test_second_summary_is_cached(self, views, portfolio):
        first = views.get_summary(portfolio)
        second = views.get_summary(portfolio)

        assert second.cached is True
        assert second.total_value == first.total_value
        assert second.allocation == first.allocation
        assert second.stats == first.stats

    def test_sort_variants_cached_separately(self, views, portfolio):
        views.get_positions(portfolio, sort_by="value", order="desc")

        assert views.get_positions(portfolio, sort_by="symbol", order="asc").cached is False
        assert views.get_positions(portfolio, sort_by="value", order="desc").cached is True

    def test_invalidation_drops_views(self, views, portfolio, equity_service, trade_source):
        views.get_summary(portfolio)
        trade_source.add_trades(portfolio, [make_trade("BTC", "BUY", "1", "48000", date(2024, 6, 20))])

        equity_service.invalidate_portfolio(portfolio)
        summary = views.get_summary(portfolio)

        assert summary.cached is False
        assert summary.total_value == Decimal("88400.00")

# backend/tests/services/test_data_sources.py
"""
Tests for the SQLAlchemy trade and price sources.

Uses the in-memory SQLite database from conftest.
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from portfolio_tracker.models import TradeSide
from portfolio_tracker.services.data_sources import SqlPriceSource, SqlTradeSource
from portfolio_tracker.services.exceptions import PortfolioNotFoundError
from tests.conftest import create_portfolio, create_prices, make_trade


@pytest.fixture
def sql_trades(session_factory) -> SqlTradeSource:
    return SqlTradeSource(session_factory)


@pytest.fixture
def sql_prices(session_factory) -> SqlPriceSource:
    return SqlPriceSource(session_factory)


class TestSqlTradeSource:
    """Tests for loading and importing trades."""

    def test_round_trip(self, db, sql_trades):
        portfolio = create_portfolio(db)
        sql_trades.add_trades(portfolio.id, [
            replace(
                make_trade("BTC", "BUY", "0.5", "40000", date(2024, 1, 1), fee="1.5", exchange="binance"),
                source_id="binance-7781",
            ),
        ])

        trades = sql_trades.get_trades(portfolio.id)

        assert len(trades) == 1
        trade = trades[0]
        assert trade.symbol == "BTC"
        assert trade.side == TradeSide.BUY
        assert trade.quantity == Decimal("0.5")
        assert trade.price == Decimal("40000")
        assert trade.fee == Decimal("1.5")
        assert trade.exchange == "binance"
        assert trade.source_id == "binance-7781"
        # SQLite drops the offset; trades come back as aware UTC
        assert trade.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_trades_ordered_by_timestamp(self, db, sql_trades):
        portfolio = create_portfolio(db)
        sql_trades.add_trades(portfolio.id, [
            make_trade("ETH", timestamp=date(2024, 1, 3)),
            make_trade("BTC", timestamp=date(2024, 1, 1)),
            make_trade("SOL", timestamp=date(2024, 1, 2)),
        ])

        assert [t.symbol for t in sql_trades.get_trades(portfolio.id)] == ["BTC", "SOL", "ETH"]

    def test_same_timestamp_keeps_insertion_order(self, db, sql_trades):
        portfolio = create_portfolio(db)
        sql_trades.add_trades(portfolio.id, [
            make_trade("BTC", quantity="1", exchange="first"),
            make_trade("BTC", quantity="2", exchange="second"),
        ])

        assert [t.exchange for t in sql_trades.get_trades(portfolio.id)] == ["first", "second"]

    def test_trades_scoped_to_portfolio(self, db, sql_trades):
        first = create_portfolio(db, "First")
        second = create_portfolio(db, "Second")
        sql_trades.add_trades(first.id, [make_trade("BTC")])
        sql_trades.add_trades(second.id, [make_trade("ETH"), make_trade("SOL")])

        assert [t.symbol for t in sql_trades.get_trades(first.id)] == ["BTC"]
        assert len(sql_trades.get_trades(second.id)) == 2

    def test_empty_portfolio(self, db, sql_trades):
        portfolio = create_portfolio(db)

        assert sql_trades.get_trades(portfolio.id) == []

    def test_unknown_portfolio(self, sql_trades):
        with pytest.raises(PortfolioNotFoundError) as exc_info:
            sql_trades.get_trades(999)

        assert exc_info.value.portfolio_id == 999

    def test_import_into_unknown_portfolio(self, sql_trades):
        with pytest.raises(PortfolioNotFoundError):
            sql_trades.add_trades(999, [make_trade()])

    def test_listeners_notified_after_import(self, db, sql_trades):
        portfolio = create_portfolio(db)
        notified = []
        sql_trades.add_listener(notified.append)

        count = sql_trades.add_trades(portfolio.id, [make_trade(), make_trade("ETH")])

        assert count == 2
        assert notified == [portfolio.id]


class TestSqlPriceSource:
    """Tests for loading daily closes."""

    def test_range_filter_is_inclusive(self, db, sql_prices):
        create_prices(db, "BTC", {
            date(2024, 1, 1): "40000",
            date(2024, 1, 2): "41000",
            date(2024, 1, 3): "42000",
            date(2024, 1, 4): "43000",
        })

        points = sql_prices.get_historical_prices("BTC", date(2024, 1, 2), date(2024, 1, 3))

        assert [(p.day, p.close) for p in points] == [
            (date(2024, 1, 2), Decimal("41000")),
            (date(2024, 1, 3), Decimal("42000")),
        ]

    def test_sorted_by_day(self, db, sql_prices):
        create_prices(db, "ETH", {date(2024, 1, 3): "3", date(2024, 1, 1): "1", date(2024, 1, 2): "2"})

        points = sql_prices.get_historical_prices("ETH", date(2024, 1, 1), date(2024, 1, 31))

        assert [p.day for p in points] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_symbol_lookup_is_case_insensitive(self, db, sql_prices):
        create_prices(db, "BTC", {date(2024, 1, 1): "40000"})

        points = sql_prices.get_historical_prices("btc", date(2024, 1, 1), date(2024, 1, 1))

        assert points[0].symbol == "BTC"

    def test_unknown_symbol_returns_empty(self, sql_prices):
        assert sql_prices.get_historical_prices("PEPE", date(2024, 1, 1), date(2024, 1, 31)) == []

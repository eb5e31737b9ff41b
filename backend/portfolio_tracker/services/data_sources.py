# backend/portfolio_tracker/services/data_sources.py
"""
SQLAlchemy-backed trade and price sources.

Both classes satisfy the TradeSource / PriceSource protocols. They hold a
session factory rather than a Session: every call opens its own short
session, so the concurrent per-symbol price fetches in
fetch_price_histories() never share a connection.

Importing trades notifies registered listeners (the equity curve service
registers its cache invalidation) after the transaction commits.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_tracker.models import Portfolio, PriceRecord, TradeRecord
from portfolio_tracker.services.exceptions import PortfolioNotFoundError
from portfolio_tracker.services.valuation.types import PricePoint, Trade

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]
TradesChangedListener = Callable[[int], object]


class SqlTradeSource:
    """Trades of a portfolio from the `trades` table."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory
        self._listeners: list[TradesChangedListener] = []

    def add_listener(self, listener: TradesChangedListener) -> None:
        """Register a callback invoked with the portfolio id after trades change."""
        self._listeners.append(listener)

    def get_trades(self, portfolio_id: int) -> list[Trade]:
        """
        All trades of a portfolio in time order.

        Trades sharing a timestamp come back in insertion order.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        with self._session_factory() as session:
            self._require_portfolio(session, portfolio_id)
            records = session.scalars(
                select(TradeRecord)
                .where(TradeRecord.portfolio_id == portfolio_id)
                .order_by(TradeRecord.timestamp, TradeRecord.id)
            ).all()
            return [self._to_trade(record) for record in records]

    def add_trades(self, portfolio_id: int, trades: Iterable[Trade]) -> int:
        """
        Persist imported trades and notify listeners.

        Returns:
            Number of trades stored

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        with self._session_factory() as session:
            self._require_portfolio(session, portfolio_id)
            records = [
                TradeRecord(
                    portfolio_id=portfolio_id,
                    symbol=trade.symbol,
                    side=trade.side,
                    quantity=trade.quantity,
                    price=trade.price,
                    fee=trade.fee,
                    timestamp=trade.timestamp,
                    exchange=trade.exchange,
                    source_id=trade.source_id,
                )
                for trade in trades
            ]
            session.add_all(records)
            session.commit()

        logger.info(f"Imported {len(records)} trades into portfolio {portfolio_id}")
        for listener in self._listeners:
            listener(portfolio_id)
        return len(records)

    @staticmethod
    def _require_portfolio(session: Session, portfolio_id: int) -> None:
        if session.get(Portfolio, portfolio_id) is None:
            raise PortfolioNotFoundError(portfolio_id)

    @staticmethod
    def _to_trade(record: TradeRecord) -> Trade:
        return Trade(
            symbol=record.symbol,
            side=record.side,
            quantity=record.quantity,
            price=record.price,
            timestamp=record.timestamp,
            fee=record.fee,
            exchange=record.exchange,
            source_id=record.source_id,
        )


class SqlPriceSource:
    """Daily closes from the `prices` table."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def get_historical_prices(
            self,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> list[PricePoint]:
        with self._session_factory() as session:
            rows = session.execute(
                select(PriceRecord.day, PriceRecord.close)
                .where(
                    PriceRecord.symbol == symbol.upper(),
                    PriceRecord.day >= start_date,
                    PriceRecord.day <= end_date,
                )
                .order_by(PriceRecord.day)
            ).all()
        return [PricePoint(symbol=symbol.upper(), day=day, close=close) for day, close in rows]

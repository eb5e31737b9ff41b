# backend/portfolio_tracker/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests, so the caches they hold are shared too.

Services are lazily initialized on first use to avoid import-time side
effects (no Redis connection is made until a request needs one).

Usage in routers:
    from portfolio_tracker.dependencies import get_equity_curve_service

    @router.get("/{portfolio_id}/equity-curve")
    def equity_curve(
        portfolio_id: int,
        service: EquityCurveService = Depends(get_equity_curve_service),
    ):
        ...

Tests replace these with app.dependency_overrides.
"""

import logging
from functools import lru_cache

from portfolio_tracker.config import settings
from portfolio_tracker.database import SessionLocal
from portfolio_tracker.services.cache import RedisCache, TTLCache
from portfolio_tracker.services.data_sources import SqlPriceSource, SqlTradeSource
from portfolio_tracker.services.portfolio_views import PortfolioViewsService
from portfolio_tracker.services.protocols import CacheBackend
from portfolio_tracker.services.simulation import SimulationService
from portfolio_tracker.services.valuation import EquityCurveService

logger = logging.getLogger(__name__)

# Entry ceiling of the in-process shared tier used when REDIS_URL is unset
_SHARED_CACHE_MAX_ENTRIES = 1000


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_local_cache, get_shared_cache (no deps)
# 2. get_trade_source, get_price_source (session factory)
# 3. get_equity_curve_service (sources + both caches)
# 4. get_simulation_service (price source + shared cache)
# 5. get_portfolio_views_service (equity service + shared cache)


@lru_cache(maxsize=1)
def get_local_cache() -> TTLCache:
    """In-process cache for full-history equity curves."""
    return TTLCache(
        ttl_seconds=settings.equity_cache_ttl_seconds,
        max_entries=settings.equity_cache_max_entries,
        name="equity-cache",
    )


@lru_cache(maxsize=1)
def get_shared_cache() -> CacheBackend:
    """
    Shared cache for simulations and portfolio views.

    Redis when REDIS_URL is configured, otherwise an in-process TTLCache.
    """
    if settings.redis_url:
        logger.info("Using Redis for the shared cache")
        return RedisCache.from_url(settings.redis_url, settings.simulation_cache_ttl_seconds)

    logger.info("REDIS_URL not set; using an in-process shared cache")
    return TTLCache(
        ttl_seconds=settings.simulation_cache_ttl_seconds,
        max_entries=_SHARED_CACHE_MAX_ENTRIES,
        name="shared-cache",
    )


@lru_cache(maxsize=1)
def get_trade_source() -> SqlTradeSource:
    return SqlTradeSource(SessionLocal)


@lru_cache(maxsize=1)
def get_price_source() -> SqlPriceSource:
    return SqlPriceSource(SessionLocal)


@lru_cache(maxsize=1)
def get_equity_curve_service() -> EquityCurveService:
    """
    Get the singleton equity curve service.

    Registers cache invalidation with the trade source so every import
    drops the portfolio's cached curve and views.
    """
    trade_source = get_trade_source()
    service = EquityCurveService(
        trade_source=trade_source,
        price_source=get_price_source(),
        local_cache=get_local_cache(),
        shared_cache=get_shared_cache(),
    )
    trade_source.add_listener(service.invalidate_portfolio)
    return service


@lru_cache(maxsize=1)
def get_simulation_service() -> SimulationService:
    return SimulationService(
        price_source=get_price_source(),
        cache=get_shared_cache(),
    )


@lru_cache(maxsize=1)
def get_portfolio_views_service() -> PortfolioViewsService:
    return PortfolioViewsService(
        equity_service=get_equity_curve_service(),
        trade_source=get_trade_source(),
        cache=get_shared_cache(),
    )

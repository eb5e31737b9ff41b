# backend/portfolio_tracker/services/simulation/__init__.py
"""
Simulation Package.

Strategy backtests on historical prices, valued by the same engine as
real portfolios.

Usage:
    from portfolio_tracker.services.simulation import SimulationService

    service = SimulationService(price_source)
    result = service.run_dca_simulation("2024-01-01", "2024-06-30", 100, 7, asset="BTC")

Architecture:
    simulation/
    ├── __init__.py      # This file - package exports
    ├── types.py         # Result data classes
    ├── strategies.py    # DCA / HODL / Rebalanced holdings schedules
    ├── presets.py       # Preset model portfolio definitions
    └── service.py       # SimulationService (orchestrator)
"""

from portfolio_tracker.services.simulation.presets import (
    PRESETS,
    PresetAllocation,
    PresetDefinition,
    get_preset_definition,
)
from portfolio_tracker.services.simulation.service import SimulationService, parse_pair
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

__all__ = [
    "SimulationService",
    "parse_pair",
    "PRESETS",
    "PresetAllocation",
    "PresetDefinition",
    "get_preset_definition",
    "DCASchedule",
    "HODLSchedule",
    "RebalancedSchedule",
    "purchase_dates",
    "DCADailyPoint",
    "DCASimulationResult",
    "PresetHolding",
    "PresetResult",
]

# backend/portfolio_tracker/services/simulation/presets.py
"""
Preset model portfolios.

Each preset is a fixed set of target weights that starts from the
configured initial capital (PRESET_INITIAL_CAPITAL, default 10 000 USD).

    BTC_100         - 100% BTC, bought once and held
    BTC_70_ETH_30   - 70% BTC / 30% ETH, rebalanced daily
"""

from dataclasses import dataclass
from decimal import Decimal

from portfolio_tracker.services.constants import HUNDRED, ZERO
from portfolio_tracker.services.exceptions import PresetNotFoundError


@dataclass(frozen=True)
class PresetAllocation:
    symbol: str
    percent: Decimal


@dataclass(frozen=True)
class PresetDefinition:
    """
    A named model portfolio.

    Raises:
        ValueError: If the allocation percentages do not sum to 100
    """

    key: str
    name: str
    description: str
    allocations: tuple[PresetAllocation, ...]
    rebalance: bool

    def __post_init__(self) -> None:
        total = sum((a.percent for a in self.allocations), ZERO)
        if total != HUNDRED:
            raise ValueError(f"Preset {self.key} weights sum to {total}, expected 100")

    @property
    def weights(self) -> dict[str, Decimal]:
        return {a.symbol: a.percent for a in self.allocations}

    @property
    def symbols(self) -> list[str]:
        return [a.symbol for a in self.allocations]


PRESETS: dict[str, PresetDefinition] = {
    "BTC_100": PresetDefinition(
        key="BTC_100",
        name="100% BTC",
        description="Pure Bitcoin strategy",
        allocations=(PresetAllocation("BTC", Decimal("100")),),
        rebalance=False,
    ),
    "BTC_70_ETH_30": PresetDefinition(
        key="BTC_70_ETH_30",
        name="70% BTC / 30% ETH",
        description="Diversified crypto portfolio with daily rebalancing",
        allocations=(
            PresetAllocation("BTC", Decimal("70")),
            PresetAllocation("ETH", Decimal("30")),
        ),
        rebalance=True,
    ),
}


def get_preset_definition(preset_name: str) -> PresetDefinition:
    """
    Look up a preset by key (case-insensitive).

    Raises:
        PresetNotFoundError: If no preset has this key
    """
    preset = PRESETS.get(preset_name.upper())
    if preset is None:
        raise PresetNotFoundError(preset_name)
    return preset

# backend/portfolio_tracker/routers/simulations.py
"""
Strategy simulation endpoints.

- POST /simulations/dca - DCA vs HODL for one asset or a BTC/ETH pair
- GET /simulations/presets - Every preset portfolio over a range
- GET /simulations/presets/{name} - One preset portfolio over a range

Simulations only need price history, so they are not nested under a
portfolio.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from portfolio_tracker.dependencies import get_simulation_service
from portfolio_tracker.schemas.simulations import (
    DCASimulationRequest,
    DCASimulationResponse,
    PresetListResponse,
    PresetResponse,
)
from portfolio_tracker.services.simulation import SimulationService

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/simulations",
    tags=["Simulations"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/dca",
    response_model=DCASimulationResponse,
    summary="Run a DCA vs HODL simulation",
)
def run_dca_simulation(
        request: DCASimulationRequest,
        service: SimulationService = Depends(get_simulation_service),
) -> DCASimulationResponse:
    """
    Buy `amount` USD every `interval` days from `start_date` and compare
    with investing the same total on `start_date`.

    Set `pair` (e.g. "70/30") to split every purchase between BTC and ETH.
    Each purchase pays the configured commission.

    Returns **400** for a non-positive amount or interval, an unsupported
    asset, a pair ratio that does not sum to 100 or a range longer than
    MAX_RANGE_DAYS, and **404** when an asset has no price history in the
    range.
    """
    result = service.run_dca_simulation(
        start_date=request.start_date,
        end_date=request.end_date,
        amount=request.amount,
        interval=request.interval,
        asset=request.asset,
        pair=request.pair,
    )
    return DCASimulationResponse.model_validate(result)


@router.get(
    "/presets",
    response_model=PresetListResponse,
    summary="Compare all preset portfolios",
)
def list_presets(
        start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
        end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
        service: SimulationService = Depends(get_simulation_service),
) -> PresetListResponse:
    presets = service.get_all_presets(start_date, end_date)
    return PresetListResponse(
        start_date=start_date,
        end_date=end_date,
        presets=[PresetResponse.model_validate(preset) for preset in presets],
    )


@router.get(
    "/presets/{preset_name}",
    response_model=PresetResponse,
    summary="Get a preset portfolio",
)
def get_preset(
        preset_name: str,
        start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
        end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
        service: SimulationService = Depends(get_simulation_service),
) -> PresetResponse:
    """
    Value a preset portfolio (e.g. `BTC_70_ETH_30`) bought with the preset
    initial capital on `start_date`. Unknown presets return **404**.
    """
    return PresetResponse.model_validate(service.get_preset(preset_name, start_date, end_date))

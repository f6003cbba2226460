from fastapi import APIRouter
from typing import Dict

from rs_credit.core.schemas import ApiResponse
from rs_credit.schemas.employee import RalCostRequest
from rs_credit.services.cost_normalizer import (
    SECTOR_MULTIPLIERS,
    EmployerCostBreakdown,
    calculate_from_ral,
    quick_employer_cost,
    rates_for_sector,
    sector_multiplier,
)

router = APIRouter(prefix="/costs", tags=["costs"])


@router.post("/ral", response_model=ApiResponse[EmployerCostBreakdown])
def calculate_employer_cost(data: RalCostRequest):
    """Employer cost breakdown for an annual gross salary (RAL)."""
    rates = rates_for_sector(data.sector, inps=data.inps, inail=data.inail, tfr=data.tfr, other=data.other)
    breakdown = calculate_from_ral(data.ral, rates)
    multiplier = sector_multiplier(data.sector)
    return ApiResponse.ok(
        breakdown,
        metadata={
            "sector_multiplier": multiplier,
            "quick_estimate": quick_employer_cost(data.ral, multiplier),
        },
    )


@router.get("/sector-multipliers", response_model=ApiResponse[Dict[str, float]])
def list_sector_multipliers():
    return ApiResponse.ok(SECTOR_MULTIPLIERS)

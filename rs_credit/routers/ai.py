from fastapi import APIRouter, Depends

from rs_credit.core.schemas import ApiResponse
from rs_credit.services.payroll_extraction import PayslipExtractor, get_extractor

router = APIRouter(prefix="/ai", tags=["ai"])


@router.get("/status", response_model=ApiResponse[dict])
def get_ai_status(extractor: PayslipExtractor = Depends(get_extractor)):
    """Extraction availability and quota usage."""
    return ApiResponse.ok(extractor.status())

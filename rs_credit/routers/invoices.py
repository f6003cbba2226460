from fastapi import APIRouter, Depends
from typing import List

from rs_credit.core.schemas import ApiResponse
from rs_credit.schemas.invoice import Invoice, InvoiceCreate
from rs_credit.routers.deps import get_timesheet_service
from rs_credit.services.timesheet_service import TimesheetService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=ApiResponse[List[Invoice]])
def list_invoices(service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.list_invoices())


@router.post("", response_model=ApiResponse[Invoice], status_code=201)
def create_invoice(data: InvoiceCreate, service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.add_invoice(data))

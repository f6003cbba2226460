"""
Employees Router

Employee records, monthly cost history and payslip import.
All business logic is delegated to TimesheetService.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile
from starlette.concurrency import run_in_threadpool
from typing import List

from rs_credit.core.schemas import ApiResponse
from rs_credit.schemas.employee import (
    EmployeeCreate,
    EmployeeResponse,
    ManualCostRequest,
    MonthUpsertRequest,
    RalCostRequest,
)
from rs_credit.schemas.extraction import PayslipBatchResult, PayslipFile
from rs_credit.routers.deps import get_timesheet_service
from rs_credit.services.payroll_extraction import PayslipExtractor, get_extractor
from rs_credit.services.timesheet_service import TimesheetService

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=ApiResponse[List[EmployeeResponse]])
def list_employees(service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.list_employees())


@router.post("", response_model=ApiResponse[EmployeeResponse], status_code=201)
def create_employee(data: EmployeeCreate, service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.create_employee(data))


@router.delete("/{employee_id}", response_model=ApiResponse[dict])
def delete_employee(employee_id: str, service: TimesheetService = Depends(get_timesheet_service)):
    """Soft-deletes the employee and removes every allocation referencing it."""
    removed = service.delete_employee(employee_id)
    return ApiResponse.ok({"id": employee_id, "allocations_removed": removed})


@router.post("/payslips", response_model=ApiResponse[PayslipBatchResult])
async def import_payslips(
    files: List[UploadFile] = File(...),
    service: TimesheetService = Depends(get_timesheet_service),
    extractor: PayslipExtractor = Depends(get_extractor),
):
    """
    Batch payslip import. Reports partial success: merged employees,
    manual-entry templates and per-file failures.
    """
    payslips = [
        PayslipFile(
            file_name=upload.filename or "payslip",
            content=await upload.read(),
            mime_type=upload.content_type or "application/octet-stream",
        )
        for upload in files
    ]
    # Extraction waits on the rate limiter; keep it off the event loop
    result = await run_in_threadpool(service.import_payslips, payslips, extractor)
    return ApiResponse.ok(result, metadata={"files": len(payslips)})


@router.put("/{employee_id}/months", response_model=ApiResponse[EmployeeResponse])
def upsert_month(
    employee_id: str,
    data: MonthUpsertRequest,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return ApiResponse.ok(service.upsert_month(employee_id, data))


@router.delete("/{employee_id}/months", response_model=ApiResponse[EmployeeResponse])
def remove_month(
    employee_id: str,
    month: str = Query(..., description="MM/YYYY"),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return ApiResponse.ok(service.remove_month(employee_id, month))


@router.post("/{employee_id}/months/next", response_model=ApiResponse[EmployeeResponse])
def add_next_month(employee_id: str, service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.add_next_month(employee_id))


@router.put("/{employee_id}/manual-cost", response_model=ApiResponse[EmployeeResponse])
def set_manual_cost(
    employee_id: str,
    data: ManualCostRequest,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return ApiResponse.ok(service.set_manual_costs(employee_id, data))


@router.post("/{employee_id}/ral-cost", response_model=ApiResponse[EmployeeResponse])
def apply_ral_cost(
    employee_id: str,
    data: RalCostRequest,
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Recompute every month's cost from an annual gross salary."""
    return ApiResponse.ok(service.apply_ral_cost(employee_id, data))

"""
Timesheet Router

Allocation edits and the derived views. Every response is computed from
the state as committed; a failed write returns an error and leaves the
previous percentages in place.
"""

from datetime import date
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from typing import Dict

from rs_credit.core.schemas import ApiResponse
from rs_credit.schemas.timesheet import (
    AllocationUpdate,
    DistributeRequest,
    TimesheetOverview,
    TimesheetSnapshot,
)
from rs_credit.routers.deps import get_timesheet_service
from rs_credit.services.timesheet_service import TimesheetService

router = APIRouter(prefix="/timesheet", tags=["timesheet"])


@router.get("", response_model=ApiResponse[TimesheetOverview])
def get_timesheet(service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.overview())


@router.put("/allocations", response_model=ApiResponse[TimesheetOverview])
def update_allocation(data: AllocationUpdate, service: TimesheetService = Depends(get_timesheet_service)):
    stored = service.set_allocation(data.employee_id, data.project_id, data.percentage)
    return ApiResponse.ok(service.overview(), metadata={"stored_percentage": stored})


@router.post("/employees/{employee_id}/distribute", response_model=ApiResponse[Dict[str, int]])
def distribute_equally(
    employee_id: str,
    data: DistributeRequest,
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Split 100% across the given projects (all projects when omitted)."""
    return ApiResponse.ok(service.distribute_equally(employee_id, data.project_ids))


@router.delete("/allocations", response_model=ApiResponse[dict])
def reset_allocations(service: TimesheetService = Depends(get_timesheet_service)):
    removed = service.reset_allocations()
    return ApiResponse.ok({"removed": removed})


@router.get("/snapshot", response_model=ApiResponse[TimesheetSnapshot])
def get_snapshot(service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.snapshot())


@router.get("/export")
def export_timesheet(service: TimesheetService = Depends(get_timesheet_service)):
    # BOM so spreadsheet apps detect UTF-8
    content = "\ufeff" + service.export_csv()
    filename = f"timesheet_rs_{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

"""
Projects Router

Projects, invoice assignment and credit figures.
"""

from fastapi import APIRouter, Depends
from typing import List

from rs_credit.core.schemas import ApiResponse
from rs_credit.schemas.project import Project, ProjectCreate, ProjectTypeInfo, ProjectUpdate
from rs_credit.schemas.timesheet import OrgCreditSummary, ProjectCreditStats
from rs_credit.routers.deps import get_timesheet_service
from rs_credit.services.credit_calculator import PROJECT_TYPES
from rs_credit.services.timesheet_service import TimesheetService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/types", response_model=ApiResponse[List[ProjectTypeInfo]])
def list_project_types():
    return ApiResponse.ok(PROJECT_TYPES)


@router.get("/credit-summary", response_model=ApiResponse[OrgCreditSummary])
def get_credit_summary(service: TimesheetService = Depends(get_timesheet_service)):
    """
    Organisation totals. labor_credit_total and budget_credit_total are
    separate figures; eligible invoices are added to total_cost only.
    """
    return ApiResponse.ok(service.credit_summary())


@router.get("", response_model=ApiResponse[List[ProjectCreditStats]])
def list_projects(service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.list_projects())


@router.post("", response_model=ApiResponse[Project], status_code=201)
def create_project(data: ProjectCreate, service: TimesheetService = Depends(get_timesheet_service)):
    return ApiResponse.ok(service.create_project(data))


@router.patch("/{project_id}", response_model=ApiResponse[Project])
def update_project(
    project_id: str,
    changes: ProjectUpdate,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return ApiResponse.ok(service.update_project(project_id, changes))


@router.delete("/{project_id}", response_model=ApiResponse[dict])
def delete_project(project_id: str, service: TimesheetService = Depends(get_timesheet_service)):
    removed = service.delete_project(project_id)
    return ApiResponse.ok({"id": project_id, "allocations_removed": removed})


@router.post("/{project_id}/invoices/{invoice_id}/toggle", response_model=ApiResponse[dict])
def toggle_invoice(
    project_id: str,
    invoice_id: str,
    service: TimesheetService = Depends(get_timesheet_service),
):
    assigned = service.toggle_invoice(project_id, invoice_id)
    return ApiResponse.ok({"project_id": project_id, "invoice_id": invoice_id, "assigned": assigned})

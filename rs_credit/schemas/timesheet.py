from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
import enum

from rs_credit.schemas.employee import Employee
from rs_credit.schemas.invoice import Invoice
from rs_credit.schemas.project import Project

class AllocationStatus(str, enum.Enum):
    NONE = "none"
    UNDER = "under"
    PERFECT = "perfect"
    OVER = "over"

class AllocationEntry(BaseModel):
    employee_id: str
    project_id: str
    percentage: int = Field(ge=0, le=100)

class AllocationUpdate(BaseModel):
    employee_id: str
    project_id: str
    # Raw user input; normalised by the allocation store
    percentage: Any = 0

class DistributeRequest(BaseModel):
    project_ids: Optional[List[str]] = None

class TeamMember(BaseModel):
    employee_id: str
    name: str
    percentage: int
    hours: float
    cost: float

class EmployeeProjectAllocation(BaseModel):
    project_id: str
    project_name: str
    percentage: int

class ProjectMonthCell(BaseModel):
    project_id: str
    percentage: int
    hours: float
    cost: float

class MonthlyAllocationRow(BaseModel):
    month: str
    total_hours: float
    hourly_cost: float
    projects: List[ProjectMonthCell]
    allocated_cost: float

class EmployeeAllocationSummary(BaseModel):
    employee_id: str
    name: str
    role: str
    total_allocation: int
    status: AllocationStatus
    total_hours: float
    allocated_hours: float
    total_cost: float
    months_count: int
    has_history: bool
    cost_is_estimated: bool

class ProjectTotals(BaseModel):
    project_id: str
    name: str
    hours: float
    cost: float

class ProjectCreditStats(BaseModel):
    project_id: str
    name: str
    project_type: str
    type_label: str
    credit_rate: float
    team_size: int
    hours: float
    labor_cost: float
    invoice_cost: float
    total_budget: float
    labor_credit_estimate: float
    total_credit_estimate: float
    team: List[TeamMember] = []

class OrgCreditSummary(BaseModel):
    """
    Organisation-wide totals.

    labor_credit_total applies each project's rate to labour cost only;
    budget_credit_total applies it to labour plus assigned eligible invoices.
    eligible_invoice_total is the raw amount of every eligible invoice and is
    only added to total_cost, never multiplied by a rate here.
    """
    total_hours: float
    labor_cost: float
    eligible_invoice_total: float
    total_cost: float
    labor_credit_total: float
    budget_credit_total: float
    active_projects: int
    projects_by_type: Dict[str, int]
    projects: List[ProjectCreditStats]

class TimesheetSnapshot(BaseModel):
    """Flat record set exchanged with storage."""
    employees: List[Employee] = []
    projects: List[Project] = []
    invoices: List[Invoice] = []
    allocations: List[AllocationEntry] = []

class TimesheetOverview(BaseModel):
    employees: List[EmployeeAllocationSummary]
    project_totals: List[ProjectTotals]
    allocations: List[AllocationEntry]

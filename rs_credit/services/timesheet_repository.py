"""
SQLAlchemy mapping between the tenant tables and TimesheetState.

The repository only stages changes on the session; committing (and rolling
back) belongs to TimesheetService.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from rs_credit.models.allocation import AllocationRecord
from rs_credit.models.employee import EmployeeRecord
from rs_credit.models.invoice import InvoiceRecord
from rs_credit.models.project import ProjectRecord
from rs_credit.schemas.employee import Employee, MonthlyCostRecord
from rs_credit.schemas.invoice import Invoice
from rs_credit.schemas.project import Project
from rs_credit.schemas.timesheet import AllocationEntry, TimesheetSnapshot
from rs_credit.services.timesheet_state import TimesheetState

logger = logging.getLogger(__name__)


def _employee_from_row(row: EmployeeRecord) -> Employee:
    history = {
        month: MonthlyCostRecord(**values)
        for month, values in (row.monthly_history or {}).items()
    }
    return Employee(
        id=row.id,
        fiscal_code=row.fiscal_code or "",
        name=row.name,
        role=row.role or "Dipendente",
        monthly_history=history,
        annual_hours=row.annual_hours or 0.0,
        fallback_hourly_cost=row.fallback_hourly_cost or 0.0,
    )


def _project_from_row(row: ProjectRecord) -> Project:
    return Project(
        id=row.id,
        name=row.name or "",
        fiscal_year=row.fiscal_year,
        project_type=row.project_type,
        status=row.status,
        start_date=row.start_date,
        end_date=row.end_date,
        description=row.description or "",
        assigned_invoice_ids=list(row.assigned_invoice_ids or []),
    )


def _invoice_from_row(row: InvoiceRecord) -> Invoice:
    return Invoice(
        id=row.id,
        number=row.number or "",
        supplier=row.supplier or "",
        amount=row.amount or 0.0,
        invoice_date=row.invoice_date,
        eligible=bool(row.eligible),
        eligibility_reason=row.eligibility_reason or "",
        project_id=row.project_id,
    )


class TimesheetRepository:
    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def load(self) -> TimesheetState:
        employees = self.db.query(EmployeeRecord).filter(
            EmployeeRecord.user_id == self.user_id,
            EmployeeRecord.is_active == True,  # noqa: E712
        ).all()
        projects = self.db.query(ProjectRecord).filter(
            ProjectRecord.user_id == self.user_id,
            ProjectRecord.is_active == True,  # noqa: E712
        ).all()
        invoices = self.db.query(InvoiceRecord).filter(
            InvoiceRecord.user_id == self.user_id
        ).all()
        allocations = self.db.query(AllocationRecord).filter(
            AllocationRecord.user_id == self.user_id
        ).all()

        snapshot = TimesheetSnapshot(
            employees=[_employee_from_row(r) for r in employees],
            projects=[_project_from_row(r) for r in projects],
            invoices=[_invoice_from_row(r) for r in invoices],
            allocations=[
                AllocationEntry(employee_id=r.employee_id, project_id=r.project_id, percentage=r.percentage)
                for r in allocations
            ],
        )
        logger.debug(
            f"Loaded tenant {self.user_id}: {len(snapshot.employees)} employees, "
            f"{len(snapshot.projects)} projects, {len(snapshot.allocations)} allocations"
        )
        return TimesheetState.deserialize(snapshot)

    def stage(self, state: TimesheetState) -> None:
        """Write the full state for this tenant onto the session (no commit)."""
        snapshot = state.serialize()
        self._stage_employees(snapshot.employees)
        self._stage_projects(snapshot.projects)
        self._stage_invoices(snapshot.invoices)
        self._stage_allocations(snapshot.allocations)
        self.db.flush()

    def _stage_employees(self, employees: List[Employee]) -> None:
        rows: Dict[str, EmployeeRecord] = {
            r.id: r for r in self.db.query(EmployeeRecord).filter(EmployeeRecord.user_id == self.user_id)
        }
        for employee in employees:
            row = rows.pop(employee.id, None)
            if row is None:
                row = EmployeeRecord(id=employee.id, user_id=self.user_id)
                self.db.add(row)
            row.fiscal_code = employee.fiscal_code
            row.name = employee.name
            row.role = employee.role
            row.monthly_history = {m: r.model_dump() for m, r in employee.monthly_history.items()}
            row.annual_hours = employee.annual_hours
            row.fallback_hourly_cost = employee.fallback_hourly_cost
            row.total_annual_hours = employee.total_annual_hours
            row.average_hourly_cost = employee.average_hourly_cost
            row.total_annual_cost = employee.total_annual_cost
            row.first_month = employee.first_month
            row.last_month = employee.last_month
            row.cost_is_estimated = employee.cost_is_estimated
            row.is_active = True
        # Soft delete whatever is no longer in memory
        for row in rows.values():
            row.is_active = False

    def _stage_projects(self, projects: List[Project]) -> None:
        rows: Dict[str, ProjectRecord] = {
            r.id: r for r in self.db.query(ProjectRecord).filter(ProjectRecord.user_id == self.user_id)
        }
        for project in projects:
            row = rows.pop(project.id, None)
            if row is None:
                row = ProjectRecord(id=project.id, user_id=self.user_id)
                self.db.add(row)
            row.name = project.name
            row.fiscal_year = project.fiscal_year
            row.project_type = project.project_type
            row.status = project.status.value
            row.start_date = project.start_date
            row.end_date = project.end_date
            row.description = project.description
            row.assigned_invoice_ids = list(project.assigned_invoice_ids)
            row.is_active = True
        for row in rows.values():
            row.is_active = False

    def _stage_invoices(self, invoices: List[Invoice]) -> None:
        rows: Dict[str, InvoiceRecord] = {
            r.id: r for r in self.db.query(InvoiceRecord).filter(InvoiceRecord.user_id == self.user_id)
        }
        for invoice in invoices:
            row = rows.pop(invoice.id, None)
            if row is None:
                row = InvoiceRecord(id=invoice.id, user_id=self.user_id)
                self.db.add(row)
            row.number = invoice.number
            row.supplier = invoice.supplier
            row.amount = invoice.amount
            row.invoice_date = invoice.invoice_date
            row.eligible = invoice.eligible
            row.eligibility_reason = invoice.eligibility_reason
            row.project_id = invoice.project_id

    def _stage_allocations(self, entries: List[AllocationEntry]) -> None:
        rows = {
            (r.employee_id, r.project_id): r
            for r in self.db.query(AllocationRecord).filter(AllocationRecord.user_id == self.user_id)
        }
        for entry in entries:
            row = rows.pop((entry.employee_id, entry.project_id), None)
            if row is None:
                self.db.add(AllocationRecord(
                    user_id=self.user_id,
                    employee_id=entry.employee_id,
                    project_id=entry.project_id,
                    percentage=entry.percentage,
                ))
            elif row.percentage != entry.percentage:
                row.percentage = entry.percentage
        # Zero and absence are the same: drop rows that left the store
        for row in rows.values():
            self.db.delete(row)

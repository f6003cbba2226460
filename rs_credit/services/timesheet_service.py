"""
Timesheet Service Layer

Business operations for one tenant. Routers stay thin; everything that
changes state goes through here.

Write protocol:
1. snapshot the in-memory state,
2. apply the mutation in memory,
3. stage the state on the session and commit,
4. on a database error: rollback the session, restore the snapshot, and
   raise PersistenceError. Aggregates read afterwards never reflect a
   write that did not land.
"""

import logging
import re
import uuid
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rs_credit.core.exceptions import AppException, PersistenceError, ValidationError
from rs_credit.schemas.employee import (
    Employee,
    EmployeeCreate,
    EmployeeResponse,
    ManualCostRequest,
    MonthUpsertRequest,
    RalCostRequest,
)
from rs_credit.schemas.extraction import PayslipBatchResult, PayslipFile
from rs_credit.schemas.invoice import Invoice, InvoiceCreate
from rs_credit.schemas.project import Project, ProjectCreate, ProjectUpdate
from rs_credit.schemas.timesheet import (
    OrgCreditSummary,
    ProjectCreditStats,
    TimesheetOverview,
    TimesheetSnapshot,
)
from rs_credit.services.cost_normalizer import (
    CostObservation,
    manual_record,
    normalize_cost,
    rates_for_sector,
)
from rs_credit.services.export_service import export_timesheet_csv
from rs_credit.services.payroll_extraction import PayslipExtractor
from rs_credit.services.timesheet_repository import TimesheetRepository

logger = logging.getLogger(__name__)

FISCAL_CODE_PATTERN = re.compile(r"^[A-Z]{6}\d{2}[A-Z]\d{2}[A-Z]\d{3}[A-Z]$", re.IGNORECASE)

T = TypeVar("T")


class TimesheetService:
    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id
        self.repository = TimesheetRepository(db, user_id)
        self.state = self.repository.load()

    def _mutate(self, operation: str, change: Callable[[], T]) -> T:
        before = self.state.snapshot()
        try:
            result = change()
        except AppException:
            # Domain rejection: nothing was persisted, undo partial in-memory work
            self.state.restore(before)
            raise

        try:
            self.repository.stage(self.state)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self.state.restore(before)
            logger.error(f"Persistence failed for {operation} (tenant {self.user_id}): {e}")
            raise PersistenceError(operation, str(e))
        except Exception:
            self.db.rollback()
            self.state.restore(before)
            logger.exception(f"Unexpected failure while saving {operation} (tenant {self.user_id})")
            raise

        logger.info(f"{operation} committed for tenant {self.user_id}")
        return result

    # --- Read side ------------------------------------------------------------

    def _employee_response(self, employee: Employee) -> EmployeeResponse:
        aggregator = self.state.aggregator()
        total = aggregator.employee_total_allocation(employee.id)
        return EmployeeResponse(
            **employee.model_dump(),
            allocation_total=total,
            allocation_status=aggregator.allocation_status(employee.id).value,
            allocated_hours=aggregator.employee_allocated_hours(employee.id),
        )

    def list_employees(self) -> List[EmployeeResponse]:
        return [self._employee_response(e) for e in self.state.history.all()]

    def get_employee(self, employee_id: str) -> EmployeeResponse:
        return self._employee_response(self.state.history.get(employee_id))

    def overview(self) -> TimesheetOverview:
        return self.state.aggregator().overview()

    def snapshot(self) -> TimesheetSnapshot:
        return self.state.serialize()

    def list_projects(self) -> List[ProjectCreditStats]:
        calculator = self.state.calculator()
        return [calculator.project_stats(p) for p in self.state.projects.all()]

    def credit_summary(self) -> OrgCreditSummary:
        return self.state.calculator().org_summary()

    def list_invoices(self) -> List[Invoice]:
        return self.state.projects.invoices()

    def export_csv(self) -> str:
        return export_timesheet_csv(self.state)

    # --- Employees ------------------------------------------------------------

    def create_employee(self, data: EmployeeCreate) -> EmployeeResponse:
        fiscal_code = data.fiscal_code.strip().upper()
        if fiscal_code and not FISCAL_CODE_PATTERN.match(fiscal_code):
            raise ValidationError("Invalid fiscal code format", details={"fiscal_code": data.fiscal_code})

        def change() -> Employee:
            employee = self.state.history.add(Employee(
                id=f"emp_{uuid.uuid4().hex[:12]}",
                fiscal_code=fiscal_code,
                name=data.name.strip(),
                role=data.role or "Dipendente",
            ))
            if data.monthly_hours is not None or data.hourly_cost is not None:
                self.state.history.set_manual_costs(
                    employee.id,
                    data.monthly_hours if data.monthly_hours is not None else 160.0,
                    data.hourly_cost or 0.0,
                )
            return employee

        return self._employee_response(self._mutate("employee", change))

    def delete_employee(self, employee_id: str) -> int:
        return self._mutate("employee deletion", lambda: self.state.delete_employee(employee_id))

    def upsert_month(self, employee_id: str, data: MonthUpsertRequest) -> EmployeeResponse:
        def change() -> Employee:
            if data.hourly_cost is not None and not data.employer_cost_override and not data.gross_monthly_pay:
                record = manual_record(data.hours_in_month, data.hourly_cost, data.monthly_cost)
            else:
                record = normalize_cost(CostObservation(
                    hours_in_month=data.hours_in_month,
                    gross_monthly_pay=data.gross_monthly_pay,
                    employer_cost_override=data.employer_cost_override,
                )).record
            return self.state.history.upsert_month(employee_id, data.month, record)

        return self._employee_response(self._mutate("monthly cost", change))

    def remove_month(self, employee_id: str, month: str) -> EmployeeResponse:
        employee = self._mutate("monthly cost removal", lambda: self.state.history.remove_month(employee_id, month))
        return self._employee_response(employee)

    def add_next_month(self, employee_id: str) -> EmployeeResponse:
        self._mutate("monthly cost", lambda: self.state.history.add_next_month(employee_id))
        return self.get_employee(employee_id)

    def set_manual_costs(self, employee_id: str, data: ManualCostRequest) -> EmployeeResponse:
        employee = self._mutate(
            "manual cost",
            lambda: self.state.history.set_manual_costs(employee_id, data.monthly_hours, data.hourly_cost),
        )
        return self._employee_response(employee)

    def apply_ral_cost(self, employee_id: str, data: RalCostRequest) -> EmployeeResponse:
        rates = rates_for_sector(data.sector, inps=data.inps, inail=data.inail, tfr=data.tfr, other=data.other)
        employee = self._mutate(
            "employer cost",
            lambda: self.state.history.apply_ral_cost(employee_id, data.ral, rates),
        )
        return self._employee_response(employee)

    def import_payslips(self, files: List[PayslipFile], extractor: PayslipExtractor) -> PayslipBatchResult:
        """
        Extract every file, then merge all successful payslips in one write.

        Extraction failures are reported per file. A failed write leaves
        every employee history exactly as it was.
        """
        outcome = extractor.extract_batch(files)
        employees = []
        if outcome.payslips:
            employees = self._mutate("payslip import", lambda: self.state.history.merge_payslips(outcome.payslips))
        logger.info(
            f"Payslip import: {len(employees)} employees, "
            f"{len(outcome.manual_templates)} manual templates, {len(outcome.failures)} failures"
        )
        return PayslipBatchResult(
            employees=employees,
            manual_templates=outcome.manual_templates,
            failures=outcome.failures,
        )

    # --- Projects and invoices ------------------------------------------------

    def create_project(self, data: ProjectCreate) -> Project:
        return self._mutate("project", lambda: self.state.projects.create(data))

    def update_project(self, project_id: str, changes: ProjectUpdate) -> Project:
        return self._mutate("project", lambda: self.state.projects.update(project_id, changes))

    def delete_project(self, project_id: str) -> int:
        return self._mutate("project deletion", lambda: self.state.delete_project(project_id))

    def toggle_invoice(self, project_id: str, invoice_id: str) -> bool:
        return self._mutate("invoice assignment", lambda: self.state.projects.toggle_invoice(project_id, invoice_id))

    def add_invoice(self, data: InvoiceCreate) -> Invoice:
        return self._mutate("invoice", lambda: self.state.projects.add_invoice(data))

    # --- Allocations ----------------------------------------------------------

    def set_allocation(self, employee_id: str, project_id: str, percentage: Any) -> int:
        return self._mutate(
            "allocation",
            lambda: self.state.set_allocation(employee_id, project_id, percentage),
        )

    def distribute_equally(self, employee_id: str, project_ids: Optional[List[str]] = None) -> Dict[str, int]:
        return self._mutate(
            "allocation",
            lambda: self.state.distribute_equally(employee_id, project_ids),
        )

    def reset_allocations(self) -> int:
        return self._mutate("allocation reset", self.state.allocations.clear_all)

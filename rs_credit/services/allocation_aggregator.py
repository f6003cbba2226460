"""
Allocation Aggregator

Derives hours and costs from the current employee histories, the allocation
store and the project set. Nothing here mutates state or caches results:
every call recomputes from the objects it was given, so a read after any
mutation is always current.

Two code paths per (employee, project) pair:
- monthly history: sum over months of hours * pct / 100, costed at that
  month's own hourly cost;
- manual mode (no history): annual_hours * pct / 100 at fallback_hourly_cost.

Sums iterate over sorted keys and use math.fsum so results do not depend on
dict insertion order.
"""

import math
from typing import Iterable, List, Tuple

from rs_credit.schemas.employee import Employee
from rs_credit.schemas.project import Project
from rs_credit.schemas.timesheet import (
    AllocationStatus,
    EmployeeAllocationSummary,
    EmployeeProjectAllocation,
    MonthlyAllocationRow,
    ProjectMonthCell,
    ProjectTotals,
    TeamMember,
    TimesheetOverview,
)
from rs_credit.services.allocation_store import AllocationStore
from rs_credit.services.cost_history import sort_months


def classify_allocation(total: int) -> AllocationStatus:
    if total > 100:
        return AllocationStatus.OVER
    if total == 100:
        return AllocationStatus.PERFECT
    if total > 0:
        return AllocationStatus.UNDER
    return AllocationStatus.NONE


def allocated_hours_and_cost(employee: Employee, percentage: int) -> Tuple[float, float]:
    """Hours and cost an employee contributes at the given percentage."""
    if percentage <= 0:
        return 0.0, 0.0

    if employee.monthly_history:
        hours: List[float] = []
        costs: List[float] = []
        for month in sort_months(employee.monthly_history.keys()):
            record = employee.monthly_history[month]
            month_hours = record.hours * percentage / 100
            hours.append(month_hours)
            costs.append(month_hours * record.hourly_cost)
        return math.fsum(hours), math.fsum(costs)

    annual = employee.annual_hours * percentage / 100
    return annual, annual * employee.fallback_hourly_cost


class AllocationAggregator:
    def __init__(
        self,
        employees: Iterable[Employee],
        store: AllocationStore,
        projects: Iterable[Project],
    ):
        self.employees = sorted(employees, key=lambda e: e.id)
        self.store = store
        self.projects = list(projects)
        self._project_ids = sorted(p.id for p in self.projects)
        self._by_id = {e.id: e for e in self.employees}

    # --- Per employee ---------------------------------------------------------

    def employee_total_allocation(self, employee_id: str) -> int:
        return sum(self.store.get(employee_id, p) for p in self._project_ids)

    def allocation_status(self, employee_id: str) -> AllocationStatus:
        return classify_allocation(self.employee_total_allocation(employee_id))

    def employee_allocated_hours(self, employee_id: str) -> float:
        employee = self._by_id.get(employee_id)
        if employee is None:
            return 0.0
        return math.fsum(
            allocated_hours_and_cost(employee, self.store.get(employee_id, p))[0]
            for p in self._project_ids
        )

    def employee_allocations(self, employee_id: str) -> List[EmployeeProjectAllocation]:
        result = []
        for project in self.projects:
            percentage = self.store.get(employee_id, project.id)
            if percentage > 0:
                result.append(EmployeeProjectAllocation(
                    project_id=project.id,
                    project_name=project.name,
                    percentage=percentage,
                ))
        return result

    def monthly_rows(self, employee_id: str) -> List[MonthlyAllocationRow]:
        """Month x project matrix for one employee, in calendar order."""
        employee = self._by_id.get(employee_id)
        if employee is None:
            return []

        rows = []
        for month in sort_months(employee.monthly_history.keys()):
            record = employee.monthly_history[month]
            cells = []
            for project in self.projects:
                percentage = self.store.get(employee_id, project.id)
                hours = record.hours * percentage / 100
                cells.append(ProjectMonthCell(
                    project_id=project.id,
                    percentage=percentage,
                    hours=hours,
                    cost=hours * record.hourly_cost,
                ))
            rows.append(MonthlyAllocationRow(
                month=month,
                total_hours=record.hours,
                hourly_cost=record.hourly_cost,
                projects=cells,
                allocated_cost=math.fsum(c.cost for c in cells),
            ))
        return rows

    def employee_summary(self, employee: Employee) -> EmployeeAllocationSummary:
        total = self.employee_total_allocation(employee.id)
        return EmployeeAllocationSummary(
            employee_id=employee.id,
            name=employee.name,
            role=employee.role,
            total_allocation=total,
            status=classify_allocation(total),
            total_hours=employee.total_annual_hours,
            allocated_hours=self.employee_allocated_hours(employee.id),
            total_cost=employee.total_annual_cost,
            months_count=employee.months_count,
            has_history=employee.has_history,
            cost_is_estimated=employee.cost_is_estimated,
        )

    # --- Per project ----------------------------------------------------------

    def _project_contributions(self, project_id: str) -> List[Tuple[Employee, int, float, float]]:
        contributions = []
        for employee in self.employees:
            percentage = self.store.get(employee.id, project_id)
            if percentage > 0:
                hours, cost = allocated_hours_and_cost(employee, percentage)
                contributions.append((employee, percentage, hours, cost))
        return contributions

    def project_hours(self, project_id: str) -> float:
        return math.fsum(c[2] for c in self._project_contributions(project_id))

    def project_cost(self, project_id: str) -> float:
        return math.fsum(c[3] for c in self._project_contributions(project_id))

    def project_team(self, project_id: str) -> List[TeamMember]:
        return [
            TeamMember(
                employee_id=employee.id,
                name=employee.name,
                percentage=percentage,
                hours=hours,
                cost=cost,
            )
            for employee, percentage, hours, cost in self._project_contributions(project_id)
        ]

    def project_totals(self) -> List[ProjectTotals]:
        return [
            ProjectTotals(
                project_id=project.id,
                name=project.name,
                hours=self.project_hours(project.id),
                cost=self.project_cost(project.id),
            )
            for project in self.projects
        ]

    def overview(self) -> TimesheetOverview:
        return TimesheetOverview(
            employees=[self.employee_summary(e) for e in self.employees],
            project_totals=self.project_totals(),
            allocations=self.store.entries(),
        )

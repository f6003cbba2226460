"""
Timesheet session state.

One explicitly constructed value per tenant/request holding the employee
cost history, the allocation store and the project registry. The aggregator
and the credit calculator are built on demand from the current contents.
"""

import logging
from typing import Any, Dict, List, Optional

from rs_credit.schemas.timesheet import TimesheetSnapshot
from rs_credit.services.allocation_aggregator import AllocationAggregator
from rs_credit.services.allocation_store import AllocationStore
from rs_credit.services.cost_history import EmployeeCostHistory
from rs_credit.services.credit_calculator import ProjectCreditCalculator
from rs_credit.services.project_registry import ProjectRegistry

logger = logging.getLogger(__name__)


class TimesheetState:
    def __init__(
        self,
        history: Optional[EmployeeCostHistory] = None,
        allocations: Optional[AllocationStore] = None,
        projects: Optional[ProjectRegistry] = None,
    ):
        self.history = history if history is not None else EmployeeCostHistory()
        self.allocations = allocations if allocations is not None else AllocationStore()
        self.projects = projects if projects is not None else ProjectRegistry()

    def aggregator(self) -> AllocationAggregator:
        return AllocationAggregator(self.history.all(), self.allocations, self.projects.all())

    def calculator(self) -> ProjectCreditCalculator:
        return ProjectCreditCalculator(self.aggregator(), self.projects.invoices())

    # --- Mutations with cascade -----------------------------------------------

    def set_allocation(self, employee_id: str, project_id: str, percentage: Any) -> int:
        self.history.get(employee_id)
        self.projects.get(project_id)
        return self.allocations.set(employee_id, project_id, percentage)

    def distribute_equally(self, employee_id: str, project_ids: Optional[List[str]] = None) -> Dict[str, int]:
        """Split 100% across the given projects, or every project when omitted."""
        self.history.get(employee_id)
        if project_ids is None:
            project_ids = self.projects.ids()
        for project_id in project_ids:
            self.projects.get(project_id)
        return self.allocations.distribute_equally(employee_id, project_ids)

    def delete_employee(self, employee_id: str) -> int:
        """Remove the employee and every allocation referencing it."""
        self.history.remove(employee_id)
        removed = self.allocations.clear_for_employee(employee_id)
        logger.info(f"Deleted employee {employee_id} and {removed} allocations")
        return removed

    def delete_project(self, project_id: str) -> int:
        """Remove the project, its allocations and its invoice assignments."""
        self.projects.remove(project_id)
        removed = self.allocations.clear_for_project(project_id)
        logger.info(f"Deleted project {project_id} and {removed} allocations")
        return removed

    # --- Persistence contract -------------------------------------------------

    def serialize(self) -> TimesheetSnapshot:
        return TimesheetSnapshot(
            employees=[e.model_copy(deep=True) for e in self.history.all()],
            projects=[p.model_copy(deep=True) for p in self.projects.all()],
            invoices=[i.model_copy(deep=True) for i in self.projects.invoices()],
            allocations=self.allocations.entries(),
        )

    @classmethod
    def deserialize(cls, snapshot: TimesheetSnapshot) -> "TimesheetState":
        """Rebuild state from a flat record set. Orphaned allocations are dropped."""
        history = EmployeeCostHistory(e.model_copy(deep=True) for e in snapshot.employees)
        registry = ProjectRegistry(
            [p.model_copy(deep=True) for p in snapshot.projects],
            [i.model_copy(deep=True) for i in snapshot.invoices],
        )
        employee_ids = set(history.ids())
        project_ids = set(registry.ids())

        valid = []
        for entry in snapshot.allocations:
            if entry.employee_id in employee_ids and entry.project_id in project_ids:
                valid.append(entry)
            else:
                logger.warning(
                    f"Dropping orphaned allocation {entry.employee_id}/{entry.project_id}"
                )
        return cls(history, AllocationStore(valid), registry)

    # --- Rollback support -----------------------------------------------------

    def snapshot(self):
        return (
            self.history.snapshot(),
            self.allocations.snapshot(),
            self.projects.snapshot(),
        )

    def restore(self, snapshot) -> None:
        employees, allocations, projects = snapshot
        self.history.restore(employees)
        self.allocations.restore(allocations)
        self.projects.restore(projects)

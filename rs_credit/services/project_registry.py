"""
Project set and invoices.

Holds the projects of one tenant together with the invoices that can be
assigned to them. Cross-entity cascades (allocations) live in TimesheetState.
"""

import logging
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional

from rs_credit.core.exceptions import NotFoundError, ValidationError
from rs_credit.schemas.invoice import Invoice, InvoiceCreate
from rs_credit.schemas.project import Project, ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)

# Fields a PATCH may set to null; null on any other field means "unchanged"
CLEARABLE_FIELDS = {"start_date", "end_date", "description"}


class ProjectRegistry:
    def __init__(
        self,
        projects: Optional[Iterable[Project]] = None,
        invoices: Optional[Iterable[Invoice]] = None,
    ):
        self._projects: Dict[str, Project] = {p.id: p for p in projects or []}
        self._invoices: Dict[str, Invoice] = {i.id: i for i in invoices or []}

    # --- Projects -------------------------------------------------------------

    def all(self) -> List[Project]:
        return list(self._projects.values())

    def ids(self) -> List[str]:
        return list(self._projects.keys())

    def get(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def create(self, data: ProjectCreate) -> Project:
        try:
            project = Project(
                id=f"proj_{uuid.uuid4().hex[:12]}",
                name=data.name.strip(),
                fiscal_year=data.fiscal_year or date.today().year,
                project_type=data.project_type,
                description=data.description,
                start_date=data.start_date,
                end_date=data.end_date,
            )
        except ValueError as e:
            raise ValidationError(str(e))
        self._projects[project.id] = project
        return project

    def add(self, project: Project) -> Project:
        self._projects[project.id] = project
        return project

    def update(self, project_id: str, changes: ProjectUpdate) -> Project:
        """
        Apply the provided fields. The date range is checked against the
        merged result, so moving only one end still has to stay ordered.
        """
        project = self.get(project_id)
        fields = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or field in CLEARABLE_FIELDS
        }
        if "name" in fields:
            fields["name"] = fields["name"].strip()
        if "description" in fields and fields["description"] is None:
            fields["description"] = ""

        start = fields.get("start_date", project.start_date)
        end = fields.get("end_date", project.end_date)
        if start and end and start > end:
            raise ValidationError(
                "Start date cannot be after end date",
                details={"start_date": str(start), "end_date": str(end)},
            )

        try:
            merged = Project.model_validate({**project.model_dump(), **fields})
        except ValueError as e:
            raise ValidationError(str(e), details={"project_id": project_id})

        for field in fields:
            setattr(project, field, getattr(merged, field))
        return project

    def remove(self, project_id: str) -> Project:
        project = self.get(project_id)
        for invoice_id in project.assigned_invoice_ids:
            invoice = self._invoices.get(invoice_id)
            if invoice is not None and invoice.project_id == project_id:
                invoice.project_id = None
        del self._projects[project_id]
        logger.info(f"Removed project {project_id}")
        return project

    # --- Invoices -------------------------------------------------------------

    def invoices(self) -> List[Invoice]:
        return list(self._invoices.values())

    def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def add_invoice(self, data: InvoiceCreate) -> Invoice:
        invoice = Invoice(id=f"inv_{uuid.uuid4().hex[:12]}", **data.model_dump())
        self._invoices[invoice.id] = invoice
        return invoice

    def toggle_invoice(self, project_id: str, invoice_id: str) -> bool:
        """
        Assign the invoice to the project, or unassign it when already there.

        Returns True when the invoice is now assigned. Only eligible invoices
        can be assigned; unassigning is always allowed.
        """
        project = self.get(project_id)
        invoice = self.get_invoice(invoice_id)

        if invoice_id in project.assigned_invoice_ids:
            project.assigned_invoice_ids.remove(invoice_id)
            if invoice.project_id == project_id:
                invoice.project_id = None
            return False

        if not invoice.eligible:
            raise ValidationError(
                "Only eligible invoices can be assigned to a project",
                details={"invoice_id": invoice_id},
            )
        project.assigned_invoice_ids.append(invoice_id)
        invoice.project_id = project_id
        return True

    # --- Rollback support -----------------------------------------------------

    def snapshot(self):
        return (
            [p.model_copy(deep=True) for p in self._projects.values()],
            [i.model_copy(deep=True) for i in self._invoices.values()],
        )

    def restore(self, snapshot) -> None:
        projects, invoices = snapshot
        self._projects = {p.id: p for p in projects}
        self._invoices = {i.id: i for i in invoices}

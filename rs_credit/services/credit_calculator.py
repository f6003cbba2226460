"""
Project Credit Calculator

Applies the project-type credit rate to the aggregated labour cost and to
the full project budget (labour plus assigned eligible invoices).

Both figures are exposed:
- labor_credit_estimate = labour cost * rate (project cards, timesheet)
- total_credit_estimate = (labour cost + eligible invoices) * rate

The organisation summary adds eligible invoice amounts to the total cost as
a raw sum. The rate is applied once per project and never again on top.
"""

import math
from collections import Counter
from typing import Dict, Iterable, List

from rs_credit.schemas.invoice import Invoice
from rs_credit.schemas.project import Project, ProjectStatus, ProjectTypeInfo
from rs_credit.schemas.timesheet import OrgCreditSummary, ProjectCreditStats
from rs_credit.services.allocation_aggregator import AllocationAggregator

DEFAULT_CREDIT_RATE = 0.10
DEFAULT_TYPE_COLOR = "#95a5a6"

PROJECT_TYPES: List[ProjectTypeInfo] = [
    ProjectTypeInfo(value="ricerca_fondamentale", label="Ricerca Fondamentale", rate=0.12, color="#9b59b6"),
    ProjectTypeInfo(value="ricerca_industriale", label="Ricerca Industriale", rate=0.10, color="#3498db"),
    ProjectTypeInfo(value="sviluppo_sperimentale", label="Sviluppo Sperimentale", rate=0.10, color="#e74c3c"),
    ProjectTypeInfo(value="innovazione_tecnologica", label="Innovazione Tecnologica", rate=0.10, color="#f39c12"),
    ProjectTypeInfo(value="innovazione_4.0", label="Innovazione 4.0", rate=0.15, color="#27ae60"),
    ProjectTypeInfo(value="innovazione_green", label="Innovazione Green", rate=0.15, color="#16a085"),
    ProjectTypeInfo(value="design", label="Design e Ideazione Estetica", rate=0.10, color="#e91e63"),
]

_TYPES_BY_VALUE: Dict[str, ProjectTypeInfo] = {t.value: t for t in PROJECT_TYPES}


def credit_rate(project_type: str) -> float:
    """Rate for a project type; unknown types get the default 10%."""
    info = _TYPES_BY_VALUE.get(project_type)
    return info.rate if info else DEFAULT_CREDIT_RATE


def type_label(project_type: str) -> str:
    info = _TYPES_BY_VALUE.get(project_type)
    return info.label if info else project_type


def type_color(project_type: str) -> str:
    info = _TYPES_BY_VALUE.get(project_type)
    return info.color if info else DEFAULT_TYPE_COLOR


class ProjectCreditCalculator:
    def __init__(self, aggregator: AllocationAggregator, invoices: Iterable[Invoice]):
        self.aggregator = aggregator
        self._invoices = {i.id: i for i in invoices}

    def invoice_cost(self, project: Project) -> float:
        """Sum of eligible invoices assigned to the project. Unknown ids are skipped."""
        amounts = []
        for invoice_id in project.assigned_invoice_ids:
            invoice = self._invoices.get(invoice_id)
            if invoice is not None and invoice.eligible:
                amounts.append(invoice.amount)
        return math.fsum(amounts)

    def project_budget(self, project: Project) -> float:
        return self.aggregator.project_cost(project.id) + self.invoice_cost(project)

    def labor_credit_estimate(self, project: Project) -> float:
        return self.aggregator.project_cost(project.id) * credit_rate(project.project_type)

    def total_credit_estimate(self, project: Project) -> float:
        return self.project_budget(project) * credit_rate(project.project_type)

    def project_stats(self, project: Project) -> ProjectCreditStats:
        rate = credit_rate(project.project_type)
        team = self.aggregator.project_team(project.id)
        labor_cost = math.fsum(m.cost for m in team)
        invoice_cost = self.invoice_cost(project)
        budget = labor_cost + invoice_cost
        return ProjectCreditStats(
            project_id=project.id,
            name=project.name,
            project_type=project.project_type,
            type_label=type_label(project.project_type),
            credit_rate=rate,
            team_size=len(team),
            hours=math.fsum(m.hours for m in team),
            labor_cost=labor_cost,
            invoice_cost=invoice_cost,
            total_budget=budget,
            labor_credit_estimate=labor_cost * rate,
            total_credit_estimate=budget * rate,
            team=team,
        )

    def eligible_invoice_total(self) -> float:
        return math.fsum(i.amount for i in self._invoices.values() if i.eligible)

    def org_summary(self) -> OrgCreditSummary:
        stats = [self.project_stats(p) for p in self.aggregator.projects]
        labor_cost = math.fsum(s.labor_cost for s in stats)
        invoices_total = self.eligible_invoice_total()
        return OrgCreditSummary(
            total_hours=math.fsum(s.hours for s in stats),
            labor_cost=labor_cost,
            eligible_invoice_total=invoices_total,
            total_cost=labor_cost + invoices_total,
            labor_credit_total=math.fsum(s.labor_credit_estimate for s in stats),
            budget_credit_total=math.fsum(s.total_credit_estimate for s in stats),
            active_projects=sum(1 for p in self.aggregator.projects if p.status == ProjectStatus.ACTIVE),
            projects_by_type=dict(Counter(type_label(p.project_type) for p in self.aggregator.projects)),
            projects=stats,
        )

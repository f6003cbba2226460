"""
Timesheet CSV export.

Per employee: a title row, then the month x project matrix
(Mese, Ore Totali, one column per project as "{hours}h ({pct}%)",
Costo Mensile). Then the project summary table.
"""

import csv
import io
from datetime import date
from typing import Optional

from rs_credit.services.credit_calculator import credit_rate, type_label
from rs_credit.services.timesheet_state import TimesheetState

UNNAMED_PROJECT = "Senza nome"


def _number(value: float) -> str:
    return f"{value:g}"


def export_timesheet_csv(state: TimesheetState, export_date: Optional[date] = None) -> str:
    aggregator = state.aggregator()
    projects = aggregator.projects
    export_date = export_date or date.today()

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["Timesheet Dettagliato - Credito R&S"])
    writer.writerow(["Data export:", export_date.strftime("%d/%m/%Y")])
    writer.writerow([])

    for employee in aggregator.employees:
        writer.writerow([f"{employee.name} - {employee.role}"])
        rows = aggregator.monthly_rows(employee.id)
        if rows:
            writer.writerow(
                ["Mese", "Ore Totali"]
                + [p.name or UNNAMED_PROJECT for p in projects]
                + ["Costo Mensile"]
            )
            for row in rows:
                writer.writerow(
                    [row.month, _number(row.total_hours)]
                    + [f"{cell.hours:.1f}h ({cell.percentage}%)" for cell in row.projects]
                    + [f"{row.allocated_cost:.2f}"]
                )
        writer.writerow([])

    writer.writerow(["RIEPILOGO PROGETTI"])
    writer.writerow(["Progetto", "Tipo", "Ore Totali", "Costo", "Aliquota", "Credito Stimato"])
    for project in projects:
        hours = aggregator.project_hours(project.id)
        cost = aggregator.project_cost(project.id)
        rate = credit_rate(project.project_type)
        writer.writerow([
            project.name or UNNAMED_PROJECT,
            type_label(project.project_type),
            f"{hours:.0f}",
            f"{cost:.2f}",
            f"{rate * 100:g}%",
            f"{cost * rate:.2f}",
        ])

    return buffer.getvalue()

"""
Employee Cost History

Owns, per employee, the month -> MonthlyCostRecord map and keeps the derived
aggregates consistent with it. Every mutation goes through this class so the
aggregates are never stale.

Month keys are "MM/YYYY" labels. Ordering always uses the parsed
(year, month) tuple: "01/2025" sorts after "12/2024".
"""

import logging
import re
import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from rs_credit.core.exceptions import (
    CannotRemoveLastMonthError,
    NotFoundError,
    ValidationError,
)
from rs_credit.schemas.employee import Employee, MonthlyCostRecord
from rs_credit.schemas.extraction import NormalizedPayslip
from rs_credit.services.cost_normalizer import (
    MONTHLY_INSTALMENTS,
    STANDARD_ANNUAL_HOURS,
    CostRates,
    calculate_from_ral,
    sanitize_amount,
)

logger = logging.getLogger(__name__)

ITALIAN_MONTHS = {
    "gennaio": 1, "febbraio": 2, "marzo": 3, "aprile": 4,
    "maggio": 5, "giugno": 6, "luglio": 7, "agosto": 8,
    "settembre": 9, "ottobre": 10, "novembre": 11, "dicembre": 12,
}

_MONTH_YEAR = re.compile(r"^(\d{1,2})\s*[/\-.]\s*(\d{4})$")
_YEAR_MONTH = re.compile(r"^(\d{4})\s*[/\-.]\s*(\d{1,2})$")
_NAMED_MONTH = re.compile(r"^([a-zA-Z]+)\s*[/\-.]?\s*(\d{4})$")


# --- Month helpers -----------------------------------------------------------

def parse_month(label: str) -> Tuple[int, int]:
    """
    Parse a month label into (year, month).

    Accepts "MM/YYYY" (and "M/YYYY"), "YYYY-MM" and Italian month names
    such as "Gennaio 2024".

    Raises:
        ValidationError: when the label cannot be parsed.
    """
    text = (label or "").strip()
    year = month = None

    match = _MONTH_YEAR.match(text)
    if match:
        month, year = int(match.group(1)), int(match.group(2))
    else:
        match = _YEAR_MONTH.match(text)
        if match:
            year, month = int(match.group(1)), int(match.group(2))
        else:
            match = _NAMED_MONTH.match(text)
            if match and match.group(1).lower() in ITALIAN_MONTHS:
                month, year = ITALIAN_MONTHS[match.group(1).lower()], int(match.group(2))

    if year is None or not 1 <= month <= 12:
        raise ValidationError(f"Invalid month label: {label!r}", details={"month": label})
    return year, month


def format_month(year: int, month: int) -> str:
    return f"{month:02d}/{year}"


def normalize_month(label: Optional[str]) -> str:
    """Canonical "MM/YYYY" label; a missing label means the current month."""
    if not label:
        today = date.today()
        return format_month(today.year, today.month)
    return format_month(*parse_month(label))


def month_sort_key(label: str) -> Tuple[int, int]:
    return parse_month(label)


def sort_months(labels: Iterable[str]) -> List[str]:
    return sorted(labels, key=month_sort_key)


def next_month(label: str) -> str:
    year, month = parse_month(label)
    if month == 12:
        return format_month(year + 1, 1)
    return format_month(year, month + 1)


# --- Aggregates --------------------------------------------------------------

def compute_aggregates(employee: Employee) -> Employee:
    """
    Recompute derived fields from monthly_history, in place.

    Pure over the history: the result does not depend on dict order.
    Without history the aggregates mirror the manual annual values.
    """
    history = employee.monthly_history
    if not history:
        employee.total_annual_hours = employee.annual_hours
        employee.average_monthly_hours = round(employee.annual_hours / 12) if employee.annual_hours else 0
        employee.average_hourly_cost = round(employee.fallback_hourly_cost, 2)
        employee.total_annual_cost = employee.annual_hours * employee.fallback_hourly_cost
        employee.months_count = 0
        employee.first_month = None
        employee.last_month = None
        employee.cost_is_estimated = False
        return employee

    months = sort_months(history.keys())
    records = [history[m] for m in months]
    count = len(records)

    total_hours = sum(r.hours for r in records)
    employee.total_annual_hours = total_hours
    employee.total_annual_cost = sum(r.monthly_cost for r in records)
    employee.average_monthly_hours = round(total_hours / count)
    # Simple mean over months, not weighted by hours
    employee.average_hourly_cost = round(sum(r.hourly_cost for r in records) / count, 2)
    employee.months_count = count
    employee.first_month = months[0]
    employee.last_month = months[-1]
    employee.cost_is_estimated = any(r.cost_estimated for r in records)
    return employee


def _normalize_fiscal_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class EmployeeCostHistory:
    """
    Collection of employees with their monthly cost history.

    Instances are owned by a TimesheetState; nothing here is module level.
    """

    def __init__(self, employees: Optional[Iterable[Employee]] = None):
        self._employees: Dict[str, Employee] = {}
        for employee in employees or []:
            self._employees[employee.id] = compute_aggregates(employee)

    def __len__(self) -> int:
        return len(self._employees)

    def __contains__(self, employee_id: str) -> bool:
        return employee_id in self._employees

    def all(self) -> List[Employee]:
        return list(self._employees.values())

    def ids(self) -> List[str]:
        return list(self._employees.keys())

    def get(self, employee_id: str) -> Employee:
        employee = self._employees.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    def find_by_fiscal_code(self, fiscal_code: str) -> Optional[Employee]:
        code = _normalize_fiscal_code(fiscal_code)
        if not code:
            return None
        for employee in self._employees.values():
            if employee.fiscal_code == code:
                return employee
        return None

    def add(self, employee: Employee) -> Employee:
        employee.fiscal_code = _normalize_fiscal_code(employee.fiscal_code)
        if employee.fiscal_code:
            existing = self.find_by_fiscal_code(employee.fiscal_code)
            if existing is not None and existing.id != employee.id:
                raise ValidationError(
                    f"An employee with fiscal code {employee.fiscal_code} already exists",
                    details={"fiscal_code": employee.fiscal_code, "employee_id": existing.id},
                )
        self._employees[employee.id] = compute_aggregates(employee)
        return employee

    def remove(self, employee_id: str) -> Employee:
        employee = self.get(employee_id)
        del self._employees[employee_id]
        return employee

    # --- Month operations -----------------------------------------------------

    def upsert_month(self, employee_id: str, month: str, record: MonthlyCostRecord) -> Employee:
        employee = self.get(employee_id)
        employee.monthly_history[normalize_month(month)] = record
        return compute_aggregates(employee)

    def remove_month(self, employee_id: str, month: str) -> Employee:
        employee = self.get(employee_id)
        key = normalize_month(month)
        if key not in employee.monthly_history:
            raise NotFoundError("Month", key)
        if len(employee.monthly_history) == 1:
            raise CannotRemoveLastMonthError(employee_id, key)
        del employee.monthly_history[key]
        return compute_aggregates(employee)

    def add_next_month(self, employee_id: str) -> str:
        """Append the month after the latest one, copying its values."""
        employee = self.get(employee_id)
        if not employee.monthly_history:
            raise ValidationError(
                "Employee has no monthly history to extend",
                details={"employee_id": employee_id},
            )
        last = sort_months(employee.monthly_history.keys())[-1]
        new_key = next_month(last)
        source = employee.monthly_history[last]
        employee.monthly_history[new_key] = MonthlyCostRecord(
            hours=source.hours,
            hourly_cost=source.hourly_cost,
            monthly_cost=source.monthly_cost,
            cost_estimated=source.cost_estimated,
        )
        compute_aggregates(employee)
        return new_key

    def apply_ral_cost(self, employee_id: str, ral: float, rates: Optional[CostRates] = None) -> Employee:
        """
        Recompute every month's cost from an annual RAL.

        Monthly cost spreads the employer total over 13 instalments, hourly
        cost over the 1720 standard annual hours.
        """
        employee = self.get(employee_id)
        breakdown = calculate_from_ral(ral, rates)
        hourly = round(breakdown.total_cost / STANDARD_ANNUAL_HOURS, 2)
        monthly = breakdown.total_cost / MONTHLY_INSTALMENTS

        for record in employee.monthly_history.values():
            record.hourly_cost = hourly
            record.monthly_cost = monthly
            record.cost_estimated = False
        employee.fallback_hourly_cost = hourly
        return compute_aggregates(employee)

    def set_manual_costs(self, employee_id: str, monthly_hours: float, hourly_cost: float) -> Employee:
        """Manual mode: only used by the aggregator when no history exists."""
        employee = self.get(employee_id)
        employee.annual_hours = sanitize_amount(monthly_hours) * 12
        employee.fallback_hourly_cost = round(sanitize_amount(hourly_cost), 2)
        return compute_aggregates(employee)

    # --- Payslip import -------------------------------------------------------

    def merge_payslips(self, payslips: Iterable[NormalizedPayslip]) -> List[Employee]:
        """
        Group payslips by fiscal code (or name when the code is missing) and
        merge them into the collection. Existing employees gain or overwrite
        months; unknown ones are created.

        Returns the touched employees in first-seen order.
        """
        touched: Dict[str, Employee] = {}
        by_name: Dict[str, Employee] = {}

        for payslip in payslips:
            code = _normalize_fiscal_code(payslip.fiscal_code)
            employee = self.find_by_fiscal_code(code) if code else by_name.get(payslip.name)
            if employee is None:
                employee = Employee(
                    id=f"emp_{uuid.uuid4().hex[:12]}",
                    fiscal_code=code,
                    name=payslip.name,
                    role=payslip.role or "Dipendente",
                )
                self._employees[employee.id] = employee
                logger.info(f"Created employee {employee.id} from payslip {payslip.file_name}")
            elif payslip.role:
                employee.role = payslip.role

            if not code:
                by_name[payslip.name] = employee

            record = payslip.record.model_copy(update={"source_file": payslip.file_name})
            employee.monthly_history[normalize_month(payslip.month)] = record
            touched[employee.id] = employee

        for employee in touched.values():
            compute_aggregates(employee)
        return list(touched.values())

    # --- Rollback support -----------------------------------------------------

    def snapshot(self) -> List[Employee]:
        return [e.model_copy(deep=True) for e in self._employees.values()]

    def restore(self, employees: List[Employee]) -> None:
        self._employees = {e.id: e for e in employees}

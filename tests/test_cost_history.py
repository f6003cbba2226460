import pytest

from rs_credit.core.exceptions import CannotRemoveLastMonthError, NotFoundError, ValidationError
from rs_credit.schemas.employee import MonthlyCostRecord
from rs_credit.schemas.extraction import NormalizedPayslip
from rs_credit.services.cost_history import (
    EmployeeCostHistory,
    compute_aggregates,
    next_month,
    normalize_month,
    parse_month,
    sort_months,
)
from conftest import make_employee


def _record(hours, hourly, estimated=False):
    return MonthlyCostRecord(hours=hours, hourly_cost=hourly, monthly_cost=hours * hourly, cost_estimated=estimated)


def test_parse_month_formats():
    assert parse_month("01/2024") == (2024, 1)
    assert parse_month("3/2024") == (2024, 3)
    assert parse_month("2024-11") == (2024, 11)
    assert parse_month("Gennaio 2025") == (2025, 1)
    assert normalize_month("3/2024") == "03/2024"


@pytest.mark.parametrize("label", ["13/2024", "2024", "", "foo 2024"])
def test_parse_month_rejects_invalid_labels(label):
    with pytest.raises(ValidationError):
        parse_month(label)


def test_months_sort_chronologically_across_year_boundary():
    assert sort_months(["01/2025", "12/2024", "06/2024"]) == ["06/2024", "12/2024", "01/2025"]
    assert next_month("12/2024") == "01/2025"


def test_first_and_last_month_use_calendar_order():
    employee = make_employee(history={"01/2025": (160, 20), "12/2024": (160, 20), "11/2024": (160, 20)})
    compute_aggregates(employee)
    assert employee.first_month == "11/2024"
    assert employee.last_month == "01/2025"


def test_aggregates_use_simple_mean_of_hourly_cost():
    employee = make_employee(history={"01/2024": (160, 20), "02/2024": (170, 22)})
    compute_aggregates(employee)
    assert employee.total_annual_hours == 330
    assert employee.total_annual_cost == pytest.approx(160 * 20 + 170 * 22)
    assert employee.average_hourly_cost == 21.0
    assert employee.average_monthly_hours == 165
    assert employee.months_count == 2


def test_aggregates_do_not_depend_on_insertion_order():
    a = make_employee(history={"01/2024": (160, 20.1), "02/2024": (150, 22.3), "03/2024": (140, 19.7)})
    b = make_employee(history={"03/2024": (140, 19.7), "01/2024": (160, 20.1), "02/2024": (150, 22.3)})
    compute_aggregates(a)
    compute_aggregates(b)
    assert a.model_dump() == b.model_dump()


def test_cost_is_estimated_if_any_month_estimated():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20)})])
    employee = history.upsert_month("emp_1", "02/2024", _record(160, 25, estimated=True))
    assert employee.cost_is_estimated is True
    employee = history.upsert_month("emp_1", "02/2024", _record(160, 25))
    assert employee.cost_is_estimated is False


def test_upsert_overwrites_and_recomputes():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20)})])
    employee = history.upsert_month("emp_1", "1/2024", _record(100, 30))
    assert employee.months_count == 1
    assert employee.total_annual_hours == 100
    assert employee.average_hourly_cost == 30


def test_remove_last_month_is_rejected():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20)})])
    with pytest.raises(CannotRemoveLastMonthError):
        history.remove_month("emp_1", "01/2024")
    assert "01/2024" in history.get("emp_1").monthly_history


def test_remove_month_recomputes():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20), "02/2024": (170, 22)})])
    employee = history.remove_month("emp_1", "02/2024")
    assert employee.months_count == 1
    assert employee.last_month == "01/2024"


def test_remove_unknown_month_raises_not_found():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20), "02/2024": (170, 22)})])
    with pytest.raises(NotFoundError):
        history.remove_month("emp_1", "05/2024")


def test_add_next_month_copies_latest_values():
    history = EmployeeCostHistory([make_employee(history={"12/2024": (170, 22), "01/2024": (160, 20)})])
    new_key = history.add_next_month("emp_1")
    employee = history.get("emp_1")
    assert new_key == "01/2025"
    assert employee.monthly_history["01/2025"].hours == 170
    assert employee.monthly_history["01/2025"].hourly_cost == 22
    assert employee.last_month == "01/2025"


def test_apply_ral_cost_rewrites_every_month():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20), "02/2024": (170, 22)})])
    employee = history.apply_ral_cost("emp_1", 35000)
    for record in employee.monthly_history.values():
        assert record.hourly_cost == pytest.approx(round(50225.0 / 1720, 2))
        assert record.monthly_cost == pytest.approx(50225.0 / 13)
        assert record.cost_estimated is False
    assert employee.cost_is_estimated is False


def test_manual_mode_without_history():
    history = EmployeeCostHistory([make_employee()])
    employee = history.set_manual_costs("emp_1", 160, 25)
    assert employee.annual_hours == 1920
    assert employee.fallback_hourly_cost == 25
    assert employee.total_annual_hours == 1920
    assert employee.has_history is False


def test_duplicate_fiscal_code_is_rejected():
    history = EmployeeCostHistory([make_employee(fiscal_code="RSSMRA80A01H501U")])
    with pytest.raises(ValidationError):
        history.add(make_employee(employee_id="emp_2", fiscal_code="rssmra80a01h501u"))


def test_merge_payslips_groups_by_fiscal_code_then_name():
    history = EmployeeCostHistory()
    payslips = [
        NormalizedPayslip(name="Mario Rossi", fiscal_code="RSSMRA80A01H501U", month="01/2024",
                          record=_record(160, 20), file_name="a.pdf"),
        NormalizedPayslip(name="Mario Rossi", fiscal_code="RSSMRA80A01H501U", month="02/2024",
                          record=_record(170, 22), file_name="b.pdf"),
        NormalizedPayslip(name="Anna Bianchi", month="01/2024", record=_record(150, 18), file_name="c.pdf"),
        NormalizedPayslip(name="Anna Bianchi", month="02/2024", record=_record(150, 18), file_name="d.pdf"),
    ]
    employees = history.merge_payslips(payslips)
    assert len(employees) == 2
    mario = history.find_by_fiscal_code("RSSMRA80A01H501U")
    assert mario.months_count == 2
    assert mario.monthly_history["02/2024"].source_file == "b.pdf"
    anna = [e for e in employees if e.name == "Anna Bianchi"][0]
    assert anna.months_count == 2


def test_merge_payslips_extends_existing_employee():
    history = EmployeeCostHistory([make_employee(fiscal_code="RSSMRA80A01H501U", history={"01/2024": (160, 20)})])
    history.merge_payslips([
        NormalizedPayslip(name="Mario Rossi", fiscal_code="RSSMRA80A01H501U", month="02/2024",
                          record=_record(170, 22), file_name="b.pdf"),
    ])
    assert len(history) == 1
    assert history.get("emp_1").months_count == 2


def test_snapshot_restore_round_trip():
    history = EmployeeCostHistory([make_employee(history={"01/2024": (160, 20)})])
    saved = history.snapshot()
    history.upsert_month("emp_1", "02/2024", _record(170, 22))
    history.restore(saved)
    assert history.get("emp_1").months_count == 1

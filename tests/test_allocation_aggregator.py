import pytest

from rs_credit.schemas.timesheet import AllocationStatus
from rs_credit.services.allocation_aggregator import AllocationAggregator, classify_allocation
from rs_credit.services.allocation_store import AllocationStore
from rs_credit.services.cost_history import compute_aggregates
from rs_credit.services.credit_calculator import ProjectCreditCalculator
from conftest import make_employee, make_project


@pytest.fixture
def mario():
    return compute_aggregates(make_employee(history={"01/2024": (160, 20), "02/2024": (170, 22)}))


def test_end_to_end_scenario(mario):
    project = make_project()
    store = AllocationStore()
    store.set(mario.id, project.id, 50)
    aggregator = AllocationAggregator([mario], store, [project])

    assert aggregator.project_hours(project.id) == pytest.approx(165)
    assert aggregator.project_cost(project.id) == pytest.approx(3470)

    calculator = ProjectCreditCalculator(aggregator, [])
    assert calculator.labor_credit_estimate(project) == pytest.approx(347)


def test_cost_uses_month_specific_hourly_cost(mario):
    project = make_project()
    store = AllocationStore()
    store.set(mario.id, project.id, 100)
    aggregator = AllocationAggregator([mario], store, [project])
    # Average hourly cost (21) would give 330 * 21 = 6930
    assert aggregator.project_cost(project.id) == pytest.approx(160 * 20 + 170 * 22)


def test_over_allocation_is_flagged_but_still_aggregated(mario):
    a, b = make_project("proj_a"), make_project("proj_b", name="Project B")
    store = AllocationStore()
    store.set(mario.id, a.id, 70)
    store.set(mario.id, b.id, 50)
    aggregator = AllocationAggregator([mario], store, [a, b])

    assert aggregator.employee_total_allocation(mario.id) == 120
    assert aggregator.allocation_status(mario.id) == AllocationStatus.OVER
    assert aggregator.project_hours(a.id) == pytest.approx(330 * 0.7)
    assert aggregator.project_hours(b.id) == pytest.approx(330 * 0.5)
    assert aggregator.employee_allocated_hours(mario.id) == pytest.approx(330 * 1.2)


@pytest.mark.parametrize("total, status", [
    (0, AllocationStatus.NONE),
    (1, AllocationStatus.UNDER),
    (99, AllocationStatus.UNDER),
    (100, AllocationStatus.PERFECT),
    (101, AllocationStatus.OVER),
])
def test_classify_allocation(total, status):
    assert classify_allocation(total) == status


def test_manual_mode_fallback_path():
    employee = compute_aggregates(make_employee(annual_hours=1720, fallback_hourly_cost=30))
    project = make_project()
    store = AllocationStore()
    store.set(employee.id, project.id, 25)
    aggregator = AllocationAggregator([employee], store, [project])

    assert aggregator.project_hours(project.id) == pytest.approx(430)
    assert aggregator.project_cost(project.id) == pytest.approx(430 * 30)
    assert aggregator.employee_allocated_hours(employee.id) == pytest.approx(430)
    assert aggregator.monthly_rows(employee.id) == []


def test_results_independent_of_iteration_order():
    employees = [
        compute_aggregates(make_employee("emp_1", history={"01/2024": (160.3, 20.17), "02/2024": (171.1, 22.09)})),
        compute_aggregates(make_employee("emp_2", name="Anna", history={"03/2024": (99.9, 31.33), "01/2024": (150.7, 18.41)})),
        compute_aggregates(make_employee("emp_3", name="Luca", annual_hours=1333.3, fallback_hourly_cost=27.77)),
    ]
    projects = [make_project("proj_a"), make_project("proj_b")]

    forward = AllocationStore()
    for employee in employees:
        forward.set(employee.id, "proj_a", 33)
        forward.set(employee.id, "proj_b", 47)
    backward = AllocationStore()
    for employee in reversed(employees):
        backward.set(employee.id, "proj_b", 47)
        backward.set(employee.id, "proj_a", 33)

    first = AllocationAggregator(employees, forward, projects)
    second = AllocationAggregator(list(reversed(employees)), backward, list(reversed(projects)))
    for project_id in ("proj_a", "proj_b"):
        assert first.project_hours(project_id) == second.project_hours(project_id)
        assert first.project_cost(project_id) == second.project_cost(project_id)


def test_allocations_to_unknown_projects_do_not_count(mario):
    store = AllocationStore()
    store.set(mario.id, "proj_gone", 60)
    aggregator = AllocationAggregator([mario], store, [make_project()])
    assert aggregator.employee_total_allocation(mario.id) == 0


def test_monthly_rows_and_team(mario):
    project = make_project()
    store = AllocationStore()
    store.set(mario.id, project.id, 50)
    aggregator = AllocationAggregator([mario], store, [project])

    rows = aggregator.monthly_rows(mario.id)
    assert [r.month for r in rows] == ["01/2024", "02/2024"]
    assert rows[0].projects[0].hours == pytest.approx(80)
    assert rows[1].allocated_cost == pytest.approx(1870)

    team = aggregator.project_team(project.id)
    assert len(team) == 1
    assert team[0].percentage == 50
    assert team[0].cost == pytest.approx(3470)


def test_overview_reflects_every_edit(mario):
    project = make_project()
    store = AllocationStore()
    aggregator = AllocationAggregator([mario], store, [project])
    assert aggregator.overview().project_totals[0].hours == 0
    store.set(mario.id, project.id, 100)
    assert aggregator.overview().project_totals[0].hours == pytest.approx(330)
    assert aggregator.overview().employees[0].status == AllocationStatus.PERFECT

import pytest
from fastapi import status

API = "/api"


def _create_employee(client, name="Mario Rossi", fiscal_code="RSSMRA80A01H501U"):
    response = client.post(f"{API}/employees", json={"name": name, "fiscal_code": fiscal_code})
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]["id"]


def _add_month(client, employee_id, month, hours, hourly_cost):
    response = client.put(
        f"{API}/employees/{employee_id}/months",
        json={"month": month, "hours_in_month": hours, "hourly_cost": hourly_cost},
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()["data"]


def _create_project(client, name="Project A", project_type="ricerca_industriale"):
    response = client.post(f"{API}/projects", json={"name": name, "project_type": project_type})
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]["id"]


@pytest.fixture
def seeded(client):
    employee_id = _create_employee(client)
    _add_month(client, employee_id, "01/2024", 160, 20)
    _add_month(client, employee_id, "02/2024", 170, 22)
    project_id = _create_project(client)
    return employee_id, project_id


def test_missing_tenant_header_is_rejected(client):
    response = client.get(f"{API}/employees", headers={"X-User-ID": ""})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "HTTP_ERROR"


def test_month_edits_update_aggregates(client, seeded):
    employee_id, _ = seeded
    employee = client.get(f"{API}/employees").json()["data"][0]
    assert employee["id"] == employee_id
    assert employee["months_count"] == 2
    assert employee["total_annual_hours"] == 330
    assert employee["average_hourly_cost"] == 21.0
    assert employee["first_month"] == "01/2024"
    assert employee["last_month"] == "02/2024"


def test_allocation_flows_into_views(client, seeded):
    employee_id, project_id = seeded
    response = client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": project_id, "percentage": "50"},
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["metadata"]["stored_percentage"] == 50
    summary = body["data"]["employees"][0]
    assert summary["total_allocation"] == 50
    assert summary["status"] == "under"
    assert summary["allocated_hours"] == pytest.approx(165)

    projects = client.get(f"{API}/projects").json()["data"]
    assert projects[0]["hours"] == pytest.approx(165)
    assert projects[0]["labor_cost"] == pytest.approx(3470)
    assert projects[0]["labor_credit_estimate"] == pytest.approx(347)
    assert projects[0]["team"][0]["percentage"] == 50


def test_allocation_input_is_normalized(client, seeded):
    employee_id, project_id = seeded
    response = client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": project_id, "percentage": 150},
    )
    assert response.json()["metadata"]["stored_percentage"] == 100

    response = client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": project_id, "percentage": "abc"},
    )
    assert response.json()["metadata"]["stored_percentage"] == 0
    assert response.json()["data"]["allocations"] == []


def test_allocation_for_unknown_project_is_404(client, seeded):
    employee_id, _ = seeded
    response = client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": "proj_missing", "percentage": 10},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_distribute_equally_across_all_projects(client, seeded):
    employee_id, _ = seeded
    _create_project(client, name="Project B")
    _create_project(client, name="Project C")

    response = client.post(f"{API}/timesheet/employees/{employee_id}/distribute", json={})
    assert response.status_code == status.HTTP_200_OK
    shares = response.json()["data"]
    assert sorted(shares.values()) == [33, 33, 34]
    assert sum(shares.values()) == 100

    employee = client.get(f"{API}/employees").json()["data"][0]
    assert employee["allocation_status"] == "perfect"


def test_reset_allocations(client, seeded):
    employee_id, project_id = seeded
    client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": project_id, "percentage": 40},
    )
    response = client.delete(f"{API}/timesheet/allocations")
    assert response.json()["data"]["removed"] == 1
    assert client.get(f"{API}/timesheet").json()["data"]["allocations"] == []


def test_last_month_cannot_be_removed(client, seeded):
    employee_id, _ = seeded
    response = client.delete(f"{API}/employees/{employee_id}/months", params={"month": "02/2024"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["months_count"] == 1

    response = client.delete(f"{API}/employees/{employee_id}/months", params={"month": "01/2024"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"]["code"] == "CANNOT_REMOVE_LAST_MONTH"


def test_add_next_month_copies_latest(client, seeded):
    employee_id, _ = seeded
    response = client.post(f"{API}/employees/{employee_id}/months/next")
    data = response.json()["data"]
    assert data["last_month"] == "03/2024"
    assert data["monthly_history"]["03/2024"]["hourly_cost"] == 22


def test_delete_employee_cascades(client, seeded):
    employee_id, project_id = seeded
    client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": project_id, "percentage": 40},
    )
    response = client.delete(f"{API}/employees/{employee_id}")
    assert response.json()["data"]["allocations_removed"] == 1

    snapshot = client.get(f"{API}/timesheet/snapshot").json()["data"]
    assert snapshot["employees"] == []
    assert snapshot["allocations"] == []


def test_invoice_assignment_and_credit_summary(client, seeded):
    employee_id, project_id = seeded
    client.put(
        f"{API}/timesheet/allocations",
        json={"employee_id": employee_id, "project_id": project_id, "percentage": 50},
    )
    invoice = client.post(
        f"{API}/invoices", json={"supplier": "ACME", "amount": 1000, "eligible": True}
    ).json()["data"]

    response = client.post(f"{API}/projects/{project_id}/invoices/{invoice['id']}/toggle")
    assert response.json()["data"]["assigned"] is True

    summary = client.get(f"{API}/projects/credit-summary").json()["data"]
    assert summary["labor_cost"] == pytest.approx(3470)
    assert summary["labor_credit_total"] == pytest.approx(347)
    assert summary["budget_credit_total"] == pytest.approx(447)
    assert summary["eligible_invoice_total"] == pytest.approx(1000)
    assert summary["total_cost"] == pytest.approx(4470)
    assert summary["active_projects"] == 1
    assert summary["projects_by_type"] == {"Ricerca Industriale": 1}

    response = client.post(f"{API}/projects/{project_id}/invoices/{invoice['id']}/toggle")
    assert response.json()["data"]["assigned"] is False


def test_project_update_rejects_inverted_dates(client, seeded):
    _, project_id = seeded
    response = client.patch(
        f"{API}/projects/{project_id}",
        json={"start_date": "2024-06-01", "end_date": "2024-01-01"},
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_project_patch_with_nulls_keeps_tenant_usable(client, seeded):
    _, project_id = seeded
    response = client.patch(
        f"{API}/projects/{project_id}",
        json={"name": None, "fiscal_year": None, "project_type": None, "status": None},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["name"] == "Project A"
    assert data["project_type"] == "ricerca_industriale"
    assert data["status"] == "active"

    projects = client.get(f"{API}/projects")
    assert projects.status_code == status.HTTP_200_OK
    assert projects.json()["data"][0]["type_label"] == "Ricerca Industriale"
    assert client.get(f"{API}/projects/credit-summary").status_code == status.HTTP_200_OK


def test_project_types_listed(client):
    types = client.get(f"{API}/projects/types").json()["data"]
    rates = {t["value"]: t["rate"] for t in types}
    assert rates["innovazione_4.0"] == 0.15
    assert rates["ricerca_fondamentale"] == 0.12


def test_tenants_do_not_see_each_other(client, seeded):
    response = client.get(f"{API}/employees", headers={"X-User-ID": "tenant-b"})
    assert response.json()["data"] == []


def test_ral_cost_preview(client):
    response = client.post(f"{API}/costs/ral", json={"ral": 35000})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["total_cost"] == pytest.approx(50225.0)
    assert data["monthly_cost"] == pytest.approx(3863.46)


def test_payslip_upload_reports_partial_success(client, override_extractor, make_extractor):
    def fake_extract(content, mime_type):
        return {
            "nome_completo": "Anna Bianchi",
            "codice_fiscale": "BNCNNA85M41F205X",
            "mese": "03/2024",
            "ore_mensili": "150",
            "costo_azienda": "3.000,00",
        }

    override_extractor(make_extractor(fake_extract))
    response = client.post(
        f"{API}/employees/payslips",
        files=[
            ("files", ("anna.pdf", b"%PDF-1.4", "application/pdf")),
            ("files", ("notes.txt", b"hello", "text/plain")),
        ],
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["metadata"]["files"] == 2
    assert [e["name"] for e in body["data"]["employees"]] == ["Anna Bianchi"]
    assert body["data"]["employees"][0]["average_hourly_cost"] == 20.0
    assert [f["file"] for f in body["data"]["failures"]] == ["notes.txt"]

    employees = client.get(f"{API}/employees").json()["data"]
    assert employees[0]["fiscal_code"] == "BNCNNA85M41F205X"


def test_payslip_upload_without_ai_returns_templates(client, override_extractor, make_extractor):
    override_extractor(make_extractor(lambda content, mime_type: {}, available=False))
    response = client.post(
        f"{API}/employees/payslips",
        files=[("files", ("anna.pdf", b"%PDF-1.4", "application/pdf"))],
    )
    data = response.json()["data"]
    assert data["employees"] == []
    assert len(data["manual_templates"]) == 1
    assert data["manual_templates"][0]["file_name"] == "anna.pdf"


def test_ai_status(client, override_extractor, make_extractor):
    override_extractor(make_extractor(lambda content, mime_type: {}, requests_per_day=10))
    data = client.get(f"{API}/ai/status").json()["data"]
    assert data["requests_today"] == 0
    assert data["requests_remaining"] == 10

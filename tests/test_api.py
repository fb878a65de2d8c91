from __future__ import annotations

import pytest
from flask import Flask

from src.leave_payroll.leave_payroll.container import Container
from src.leave_payroll.leave_payroll.leave.controller import register as register_leave
from src.leave_payroll.leave_payroll.payroll.controller import register as register_payroll


@pytest.fixture
def client(employees, policies, leave_repo, payroll_repo, leave_service, payroll_generator, payment_service):
    container = Container(
        conn=None,
        employees_repo=employees,
        policies_repo=policies,
        leave_repo=leave_repo,
        payroll_repo=payroll_repo,
        leave_service=leave_service,
        payroll_generator=payroll_generator,
        payment_service=payment_service,
    )
    app = Flask(__name__)
    app.config["TESTING"] = True
    register_leave(app, container)
    register_payroll(app, container)
    return app.test_client()


def _create_leave(client, **overrides):
    body = {
        "employee_id": 1,
        "leave_type_id": 2,
        "start_date": "2025-10-06",
        "end_date": "2025-10-07",
        "reason": "Personal",
    }
    body.update(overrides)
    return client.post("/api/leave/requests", json=body)


def test_leave_request_flow(client):
    resp = _create_leave(client)
    assert resp.status_code == 201
    rid = resp.get_json()["request_id"]

    resp = client.post(f"/api/admin/leave/requests/{rid}/approve", json={"admin_id": 99})
    assert resp.get_json() == {"success": True, "days_recorded": 2}

    resp = client.get("/api/leave/requests?employee_id=1&status=approved")
    [row] = resp.get_json()["requests"]
    assert row["request_id"] == rid
    assert row["start_date"] == "2025-10-06"


def test_validation_errors_are_400(client):
    resp = _create_leave(client, start_date="06/10/2025")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False

    resp = client.post("/api/admin/leave/requests/1/approve", json={})
    assert resp.status_code == 400


def test_missing_rows_are_404(client):
    resp = client.post("/api/admin/leave/requests/404/approve", json={"admin_id": 99})
    assert resp.status_code == 404


def test_balances_endpoint(client):
    resp = client.get("/api/leave/balances/1?year=2025")
    data = resp.get_json()
    assert resp.status_code == 200
    assert {b["leave_type_name"] for b in data["balances"]} == {"Annual", "Unpaid"}


def test_rollover_endpoints(client):
    resp = client.get("/api/admin/leave/rollover?from_year=2025&to_year=2026")
    assert resp.get_json()["summary"]["employees_with_balances"] == 2

    resp = client.post("/api/admin/leave/rollover", json={"from_year": 2025, "to_year": 2027})
    assert resp.status_code == 400


def test_generate_payroll_and_export(client):
    _create_leave(client)
    rid = client.get("/api/leave/requests").get_json()["requests"][0]["request_id"]
    client.post(f"/api/admin/leave/requests/{rid}/approve", json={"admin_id": 99})

    resp = client.post("/api/admin/payroll/generate", json={"payment_month": "2025-10", "employee_ids": [1]})
    report = resp.get_json()["report"]
    assert report["succeeded"] == 1
    assert report["outcomes"][0]["payment"]["net_salary"] == 4677.42

    resp = client.get("/api/admin/payroll/export?month=2025-10")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    text = resp.data.decode("utf-8-sig")
    assert text.splitlines()[0].startswith("employee_name,base_salary")
    assert "Asha Rao,5000.00,322.58" in text


def test_generate_rejects_bad_percentage(client, payroll_repo):
    resp = client.post("/api/admin/payroll/generate", json={"payment_month": "2025-10", "deduction_percentage": 120})
    assert resp.status_code == 400
    assert payroll_repo.payments == {}


def test_salary_conflict_is_409(client):
    resp = client.post(
        "/api/admin/salaries",
        json={"employee_id": 1, "base_salary": 7000, "effective_from": "2023-01-01"},
    )
    assert resp.status_code == 409


def test_mark_and_edit_payment(client):
    client.post("/api/admin/payroll/generate", json={"payment_month": "2025-10", "employee_ids": [2]})
    pid = client.get("/api/admin/payroll/payments?month=2025-10").get_json()["payments"][0]["payment_id"]

    resp = client.patch(f"/api/admin/payroll/payments/{pid}", json={"unpaid_leave_days": 1})
    assert resp.get_json()["payment"]["net_salary"] == 3000

    resp = client.post(f"/api/admin/payroll/payments/{pid}/status", json={"is_paid": True, "payment_date": "2025-10-31"})
    assert resp.get_json()["payment"]["payment_date"] == "2025-10-31"

    resp = client.patch(f"/api/admin/payroll/payments/{pid}", json={"unpaid_leave_days": 2})
    assert resp.status_code == 400


def test_mark_payment_rejects_non_boolean_flag(client, payroll_repo):
    client.post("/api/admin/payroll/generate", json={"payment_month": "2025-10", "employee_ids": [2]})
    pid = client.get("/api/admin/payroll/payments?month=2025-10").get_json()["payments"][0]["payment_id"]

    resp = client.post(f"/api/admin/payroll/payments/{pid}/status", json={"is_paid": "false"})
    assert resp.status_code == 400
    assert payroll_repo.payments[pid].is_paid is False


def test_generate_accepts_numeric_strings(client):
    resp = client.post(
        "/api/admin/payroll/generate",
        json={
            "payment_month": "2025-10",
            "employee_ids": [1],
            "deduction_percentage": "100",
            "adjustments": {"1": {"advance_amount": "250", "advance_reason": "Festival"}},
        },
    )
    assert resp.status_code == 200
    [outcome] = resp.get_json()["report"]["outcomes"]
    assert outcome["ok"] is True
    assert outcome["payment"]["advance_deductions"] == 250
    assert outcome["payment"]["net_salary"] == 4750
    assert outcome["payment"]["notes"] == "Manual advance: 250 - Festival"

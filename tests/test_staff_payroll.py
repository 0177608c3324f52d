from datetime import date, timedelta

import pytest

from salon_api.services.staff import months_ago, recent_month_keys


def _staff(client, auth, name="Choi", incentive_rate=0):
    r = client.post("/api/v1/staff", json={"name": name, "role": "Designer", "incentive_rate": incentive_rate}, headers=auth)
    assert r.status_code == 201, r.text
    return r.json()["id"]


def test_staff_crud(client, auth):
    staff_id = _staff(client, auth)
    r = client.put(f"/api/v1/staff/{staff_id}", json={"phone": "010-0000-0000", "active": False}, headers=auth)
    assert r.json()["phone"] == "010-0000-0000"
    assert r.json()["active"] is False
    assert client.post("/api/v1/staff", json={"name": "X", "incentive_rate": 120}, headers=auth).status_code == 422
    assert client.delete(f"/api/v1/staff/{staff_id}", headers=auth).status_code == 204
    assert client.get(f"/api/v1/staff/{staff_id}", headers=auth).status_code == 404


def test_schedule_batch_replaces_existing(client, auth):
    staff_id = _staff(client, auth)
    payload = {
        "staff_id": staff_id,
        "start_date": "2026-10-21",
        "repeat_weeks": 2,
        "schedule": [
            {"day_of_week": "Monday", "start_time": "09:00", "end_time": "18:00"},
            {"day_of_week": "wednesday", "start_time": "10:00", "end_time": "19:00"},
            {"day_of_week": "sunday", "is_holiday": True},
        ],
    }
    r = client.post("/api/v1/staff/schedule/batch", json=payload, headers=auth)
    assert r.status_code == 201, r.text
    assert r.json() == {"success": True, "count": 4, "replaced": 0}

    r = client.post("/api/v1/staff/schedule/batch", json=payload, headers=auth)
    assert r.json() == {"success": True, "count": 4, "replaced": 4}

    rows = client.get("/api/v1/staff/attendance", params={"staff_id": staff_id}, headers=auth).json()
    assert [(a["start_time"][:16], a["status"], a["type"]) for a in rows] == [
        ("2026-10-19T09:00", "normal", "scheduled"),
        ("2026-10-21T10:00", "normal", "scheduled"),
        ("2026-10-26T09:00", "normal", "scheduled"),
        ("2026-10-28T10:00", "normal", "scheduled"),
    ]


def test_schedule_day_requires_times(client, auth):
    staff_id = _staff(client, auth)
    payload = {
        "staff_id": staff_id,
        "start_date": "2026-10-21",
        "schedule": [{"day_of_week": "monday", "start_time": "09:00"}],
    }
    assert client.post("/api/v1/staff/schedule/batch", json=payload, headers=auth).status_code == 422


def test_attendance_crud(client, auth):
    staff_id = _staff(client, auth)
    r = client.post(
        "/api/v1/staff/attendance",
        json={"staff_id": staff_id, "type": "actual", "start_time": "2026-10-20T09:00:00", "end_time": "2026-10-20T17:00:00"},
        headers=auth,
    )
    assert r.status_code == 201
    record = r.json()
    assert record["status"] == "normal"

    r = client.put(f"/api/v1/staff/attendance/{record['id']}", json={"end_time": "2026-10-20T08:00:00"}, headers=auth)
    assert r.status_code == 400

    r = client.put(f"/api/v1/staff/attendance/{record['id']}", json={"status": "late"}, headers=auth)
    assert r.json()["status"] == "late"

    rows = client.get("/api/v1/staff/attendance", params={"type": "actual"}, headers=auth).json()
    assert len(rows) == 1
    assert client.delete(f"/api/v1/staff/attendance/{record['id']}", headers=auth).status_code == 204


def test_payroll_settings_defaults_and_upsert(client, auth):
    staff_id = _staff(client, auth)
    r = client.get(f"/api/v1/payroll/settings/{staff_id}", headers=auth)
    assert r.status_code == 200
    body = r.json()
    assert body["id"] is None
    assert body["national_pension_rate"] == 4.5
    assert body["income_tax_rate"] == 3.3

    r = client.put(f"/api/v1/payroll/settings/{staff_id}", json={"base_salary": 2500000}, headers=auth)
    assert r.status_code == 200
    first_id = r.json()["id"]
    r = client.put(f"/api/v1/payroll/settings/{staff_id}", json={"base_salary": 2600000}, headers=auth)
    assert r.json()["id"] == first_id
    assert client.get(f"/api/v1/payroll/settings/{staff_id}", headers=auth).json()["base_salary"] == 2600000


def test_payroll_calculation(client, auth):
    staff_id = _staff(client, auth, incentive_rate=10)
    client.put(f"/api/v1/payroll/settings/{staff_id}", json={"base_salary": 0, "hourly_rate": 10000}, headers=auth)
    for day in ("2026-09-02", "2026-09-03"):
        client.post(
            "/api/v1/staff/attendance",
            json={"staff_id": staff_id, "type": "actual", "start_time": f"{day}T09:00:00", "end_time": f"{day}T17:30:00"},
            headers=auth,
        )
    # outside the month
    client.post(
        "/api/v1/staff/attendance",
        json={"staff_id": staff_id, "type": "actual", "start_time": "2026-10-01T09:00:00", "end_time": "2026-10-01T17:00:00"},
        headers=auth,
    )
    appointment = client.post(
        "/api/v1/appointments", json={"staff_id": staff_id, "appointment_date": "2026-09-10T11:00:00"}, headers=auth
    ).json()
    client.post(
        "/api/v1/transactions",
        json={"appointment_id": appointment["id"], "amount": 50000, "transaction_date": "2026-09-10"},
        headers=auth,
    )

    r = client.post("/api/v1/payroll/calculate", json={"staff_id": staff_id, "month": "2026-09"}, headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    details = body["calculation_details"]
    assert details["work_hours"] == 16
    assert details["hourly_pay"] == 160000
    assert details["overtime_hours"] == 0
    assert details["sales"] == 50000
    assert details["incentive_pay"] == 5000

    record = body["payroll_record"]
    assert record["total_gross"] == 165000
    assert record["national_pension"] == pytest.approx(7425)
    assert record["health_insurance"] == pytest.approx(5849.25)
    assert record["employment_insurance"] == pytest.approx(1485)
    assert record["income_tax"] == pytest.approx(5445)
    assert record["total_deductions"] == pytest.approx(20204.25)
    assert record["net_salary"] == pytest.approx(144795.75)
    assert record["status"] == "draft"
    assert record["memo"] == "auto-calculated (hours: 16h)"

    again = client.post("/api/v1/payroll/calculate", json={"staff_id": staff_id, "month": "2026-09"}, headers=auth)
    assert again.json()["payroll_record"]["id"] == record["id"]

    records = client.get("/api/v1/payroll/records", params={"staff_id": staff_id}, headers=auth).json()
    assert len(records) == 1
    assert records[0]["staff"]["name"] == "Choi"


def test_payroll_records_and_summary(client, auth):
    first = _staff(client, auth, name="Alpha")
    _staff(client, auth, name="Beta")

    r = client.post(
        "/api/v1/payroll/records",
        json={"staff_id": first, "month": "2026-10", "total_gross": 3000000, "net_salary": 2700000, "status": "confirmed"},
        headers=auth,
    )
    assert r.status_code == 201
    record_id = r.json()["id"]

    r = client.patch(
        "/api/v1/payroll/records",
        json={"staff_id": first, "month": "2026-10", "total_gross": 3100000, "net_salary": 2800000, "status": "paid"},
        headers=auth,
    )
    assert r.json()["id"] == record_id
    assert r.json()["status"] == "paid"

    summary = client.get("/api/v1/payroll/summary", params={"month": "2026-10"}, headers=auth).json()
    assert [(row["staff_name"], row["status"]) for row in summary["rows"]] == [("Alpha", "paid"), ("Beta", "not_calculated")]
    assert summary["total_gross_pay"] == 3100000
    assert summary["total_net_pay"] == 2800000
    assert summary["total_pages"] == 1

    filtered = client.get(
        "/api/v1/payroll/summary", params={"month": "2026-10", "status": "not_calculated"}, headers=auth
    ).json()
    assert [row["staff_name"] for row in filtered["rows"]] == ["Beta"]
    assert filtered["total_gross_pay"] == 3100000

    ordered = client.get(
        "/api/v1/payroll/summary", params={"month": "2026-10", "sort_key": "net_salary", "sort_dir": "desc"}, headers=auth
    ).json()
    assert ordered["rows"][0]["staff_name"] == "Alpha"

    assert client.get("/api/v1/payroll/summary", params={"month": "2026-10", "sort_key": "bogus"}, headers=auth).status_code == 400
    assert client.get("/api/v1/payroll/summary", params={"month": "2026-13"}, headers=auth).status_code == 422

    assert client.delete(f"/api/v1/payroll/records/{record_id}", headers=auth).status_code == 204
    records = client.get("/api/v1/payroll/records", params={"month": "2026-10"}, headers=auth).json()
    assert records == []


def test_month_window_helpers():
    assert months_ago(date(2026, 5, 31), 3) == date(2026, 2, 28)
    assert months_ago(date(2026, 1, 15), 1) == date(2025, 12, 15)
    assert recent_month_keys(date(2026, 2, 10), 3) == ["2025-12", "2026-01", "2026-02"]


def test_staff_performance(client, auth, other_auth):
    staff_id = _staff(client, auth, incentive_rate=10)
    today = date.today()
    recent, old = today - timedelta(days=3), today - timedelta(days=200)

    appointments = []
    for day, status in ((recent, "complete"), (recent, "scheduled"), (old, "complete")):
        r = client.post(
            "/api/v1/appointments",
            json={"staff_id": staff_id, "appointment_date": f"{day.isoformat()}T11:00:00", "status": status},
            headers=auth,
        )
        assert r.status_code == 201, r.text
        appointments.append(r.json()["id"])
    for appointment_id, amount, day in ((appointments[0], 50000, recent), (appointments[2], 99999, old)):
        r = client.post(
            "/api/v1/transactions",
            json={"appointment_id": appointment_id, "amount": amount, "transaction_date": day.isoformat()},
            headers=auth,
        )
        assert r.status_code == 201, r.text
    for kind in ("actual", "scheduled"):
        r = client.post(
            "/api/v1/staff/attendance",
            json={
                "staff_id": staff_id,
                "type": kind,
                "start_time": f"{recent.isoformat()}T09:00:00",
                "end_time": f"{recent.isoformat()}T17:30:00",
            },
            headers=auth,
        )
        assert r.status_code == 201, r.text

    r = client.get(f"/api/v1/staff/{staff_id}/performance", headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["staff"]["incentive_rate"] == 10
    assert body["months"] == 3
    assert body["performance"] == {
        "appointment_count": 2,
        "completed_count": 1,
        "total_revenue": 50000,
        "avg_revenue": 50000,
        "total_work_hours": 8.5,
        "revenue_per_hour": 5882,
        "incentive_pay": 5000,
        "avg_appointments_per_month": 0.7,
        "avg_revenue_per_month": 16667,
    }
    trends = body["monthly_trends"]
    assert [t["month"] for t in trends] == recent_month_keys(today, 3)
    assert sum(t["appointments"] for t in trends) == 2
    assert sum(t["revenue"] for t in trends) == 50000

    assert client.get(f"/api/v1/staff/{staff_id}/performance", headers=other_auth).status_code == 404
    assert client.get(f"/api/v1/staff/{staff_id}/performance", params={"months": 0}, headers=auth).status_code == 422

def _refs(client, auth):
    customer = client.post("/api/v1/customers", json={"name": "Kim"}, headers=auth).json()
    staff = client.post("/api/v1/staff", json={"name": "Choi", "role": "Designer"}, headers=auth).json()
    service = client.post("/api/v1/products", json={"name": "Cut", "price": 30000}, headers=auth).json()
    return customer["id"], staff["id"], service["id"]


def test_appointment_crud_and_window(client, auth):
    customer_id, staff_id, service_id = _refs(client, auth)
    body = {"customer_id": customer_id, "staff_id": staff_id, "service_id": service_id, "total_price": 30000}
    for day in ("2026-10-20T10:00:00", "2026-10-22T15:30:00", "2026-11-02T09:00:00"):
        r = client.post("/api/v1/appointments", json={**body, "appointment_date": day}, headers=auth)
        assert r.status_code == 201, r.text
        assert r.json()["status"] == "scheduled"

    r = client.get(
        "/api/v1/appointments", params={"from": "2026-10-01T00:00:00", "to": "2026-11-01T00:00:00"}, headers=auth
    )
    rows = r.json()
    assert [a["appointment_date"][:10] for a in rows] == ["2026-10-20", "2026-10-22"]

    appointment_id = rows[0]["id"]
    r = client.put(f"/api/v1/appointments/{appointment_id}", json={"status": "complete"}, headers=auth)
    assert r.status_code == 200
    assert r.json()["status"] == "complete"
    assert r.json()["customer_id"] == customer_id

    assert len(client.get("/api/v1/appointments", params={"status": "complete"}, headers=auth).json()) == 1

    r = client.put(f"/api/v1/appointments/{appointment_id}", json={"status": "done"}, headers=auth)
    assert r.status_code == 422

    assert client.delete(f"/api/v1/appointments/{appointment_id}", headers=auth).status_code == 204
    assert client.get(f"/api/v1/appointments/{appointment_id}", headers=auth).status_code == 404


def test_deleting_customer_keeps_appointment(client, auth):
    customer_id, _, _ = _refs(client, auth)
    appointment = client.post(
        "/api/v1/appointments",
        json={"customer_id": customer_id, "appointment_date": "2026-10-20T10:00:00"},
        headers=auth,
    ).json()
    assert client.delete(f"/api/v1/customers/{customer_id}", headers=auth).status_code == 204
    r = client.get(f"/api/v1/appointments/{appointment['id']}", headers=auth)
    assert r.status_code == 200
    assert r.json()["customer_id"] is None


def test_recurring_series(client, auth):
    customer_id, staff_id, service_id = _refs(client, auth)
    # 2026-10-21 is a Wednesday; Monday of that week is skipped
    payload = {
        "customer_id": customer_id,
        "staff_id": staff_id,
        "service_id": service_id,
        "start_date": "2026-10-21",
        "start_time": "14:30",
        "repeat_weeks": 2,
        "days": [1, 3, 0],
    }
    r = client.post("/api/v1/appointments/recurring", json=payload, headers=auth)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["count"] == 5
    assert [a["appointment_date"][:16] for a in body["appointments"]] == [
        "2026-10-21T14:30",
        "2026-10-25T14:30",
        "2026-10-26T14:30",
        "2026-10-28T14:30",
        "2026-11-01T14:30",
    ]
    assert {a["recurring_id"] for a in body["appointments"]} == {body["recurring_id"]}

    r = client.delete(f"/api/v1/appointments/recurring/{body['recurring_id']}", headers=auth)
    assert r.status_code == 200
    assert r.json() == {"deleted": 5}
    assert client.get("/api/v1/appointments", headers=auth).json() == []

    r = client.delete(f"/api/v1/appointments/recurring/{body['recurring_id']}", headers=auth)
    assert r.status_code == 404


def test_recurring_validation(client, auth):
    base = {"start_date": "2026-10-21", "start_time": "10:00", "repeat_weeks": 1}

    # only Monday requested, which precedes the start date
    r = client.post("/api/v1/appointments/recurring", json={**base, "days": [1]}, headers=auth)
    assert r.status_code == 400

    r = client.post("/api/v1/appointments/recurring", json={**base, "days": [7]}, headers=auth)
    assert r.status_code == 422

    r = client.post("/api/v1/appointments/recurring", json={**base, "days": [3], "start_time": "25:00"}, headers=auth)
    assert r.status_code == 422

    r = client.post("/api/v1/appointments/recurring", json={**base, "days": [3], "repeat_weeks": 13}, headers=auth)
    assert r.status_code == 422

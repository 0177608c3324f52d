from datetime import date, timedelta


def _create_customer(client, auth, **overrides):
    payload = {"name": "Kim Minji", "phone": "010-1234-5678", "email": "minji@example.com"}
    payload.update(overrides)
    r = client.post("/api/v1/customers", json=payload, headers=auth)
    assert r.status_code == 201, r.text
    return r.json()


def test_customer_crud(client, auth):
    created = _create_customer(client, auth, address="   ")
    assert created["address"] is None

    r = client.get(f"/api/v1/customers/{created['id']}", headers=auth)
    assert r.status_code == 200
    assert r.json()["name"] == "Kim Minji"

    r = client.put(f"/api/v1/customers/{created['id']}", json={"features": "Curly hair"}, headers=auth)
    assert r.status_code == 200
    assert r.json()["features"] == "Curly hair"
    assert r.json()["phone"] == "010-1234-5678"

    r = client.delete(f"/api/v1/customers/{created['id']}", headers=auth)
    assert r.status_code == 204
    assert client.get(f"/api/v1/customers/{created['id']}", headers=auth).status_code == 404
    assert client.delete(f"/api/v1/customers/{created['id']}", headers=auth).status_code == 404


def test_customer_search_and_order(client, auth):
    _create_customer(client, auth, name="Alpha", phone="010-1111-0000", email=None)
    _create_customer(client, auth, name="Beta", phone="010-2222-0000", email=None)

    r = client.get("/api/v1/customers", params={"search": "2222"}, headers=auth)
    assert [c["name"] for c in r.json()] == ["Beta"]

    r = client.get("/api/v1/customers", params={"order_by": "name", "ascending": True}, headers=auth)
    assert [c["name"] for c in r.json()] == ["Alpha", "Beta"]

    r = client.get("/api/v1/customers", params={"order_by": "nope"}, headers=auth)
    assert r.status_code == 400


def test_customer_validation_error_envelope(client, auth):
    r = client.post("/api/v1/customers", json={"name": "  "}, headers=auth)
    assert r.status_code == 422
    body = r.json()
    assert body["error"]["type"] == "validation_error"
    assert body["path"] == "/api/v1/customers"
    assert body["method"] == "POST"
    assert isinstance(body["error"]["details"], list)


def test_customer_stats(client, auth):
    customer = _create_customer(client, auth)
    for day, status in (("2026-09-01T10:00:00", "complete"), ("2026-10-01T10:00:00", "complete"), ("2026-10-20T10:00:00", "scheduled")):
        r = client.post(
            "/api/v1/appointments",
            json={"customer_id": customer["id"], "appointment_date": day, "status": status},
            headers=auth,
        )
        assert r.status_code == 201, r.text
    for day, amount in (("2026-09-01", 30000), ("2026-10-01", 50000)):
        r = client.post(
            "/api/v1/transactions",
            json={"customer_id": customer["id"], "amount": amount, "transaction_date": day},
            headers=auth,
        )
        assert r.status_code == 201, r.text

    r = client.get(f"/api/v1/customers/{customer['id']}/stats", headers=auth)
    assert r.status_code == 200
    stats = r.json()
    assert stats["ltv"] == {"total_revenue": 80000.0, "avg_revenue": 40000.0, "transaction_count": 2}
    assert stats["visits"]["total_visits"] == 2
    assert stats["visits"]["total_appointments"] == 3
    assert stats["visits"]["scheduled"] == 1
    assert round(stats["visits"]["return_rate"], 2) == 66.67
    assert stats["timeline"]["last_transaction"] == "2026-10-01"
    assert stats["monthly_revenue"] == {"2026-09": 30000.0, "2026-10": 50000.0}


def test_customer_ltv_and_vip(client, auth):
    vip = _create_customer(client, auth, name="Vip")
    regular = _create_customer(client, auth, name="Regular", email=None)
    for _ in range(2):
        client.post("/api/v1/transactions", json={"customer_id": vip["id"], "amount": 300000}, headers=auth)
    client.post("/api/v1/transactions", json={"customer_id": regular["id"], "amount": 10000}, headers=auth)
    for day in ("2026-09-01T10:00:00", "2026-09-15T10:00:00"):
        client.post("/api/v1/appointments", json={"customer_id": vip["id"], "appointment_date": day}, headers=auth)

    rows = client.get("/api/v1/analytics/customer-ltv", headers=auth).json()
    assert [r["customer_name"] for r in rows] == ["Vip", "Regular"]
    assert rows[0]["visit_count"] == 2
    assert rows[0]["return_rate"] == 50.0
    assert rows[1]["return_rate"] == 0.0

    report = client.get(
        "/api/v1/analytics/vip-customers", params={"min_transactions": 2, "min_revenue": 500000}, headers=auth
    ).json()
    assert [v["customer_name"] for v in report["vip_customers"]] == ["Vip"]
    assert report["statistics"]["total_vip_revenue"] == 600000.0
    assert report["statistics"]["criteria"] == {"min_transactions": 2, "min_revenue": 500000.0}


def test_customer_timeline(client, auth, other_auth):
    customer = _create_customer(client, auth)
    today = date.today()
    product = client.post("/api/v1/products", json={"name": "Shampoo", "price": 15000}, headers=auth).json()
    appointment = client.post(
        "/api/v1/appointments",
        json={
            "customer_id": customer["id"],
            "appointment_date": f"{(today - timedelta(days=10)).isoformat()}T10:00:00",
            "notes": "first visit",
        },
        headers=auth,
    ).json()
    client.post(
        "/api/v1/transactions",
        json={
            "customer_id": customer["id"],
            "appointment_id": appointment["id"],
            "amount": 30000,
            "transaction_date": (today - timedelta(days=5)).isoformat(),
        },
        headers=auth,
    )
    for delta, reason in ((100, "signup"), (-30, "redeem")):
        client.post(f"/api/v1/customers/{customer['id']}/points", json={"delta": delta, "reason": reason}, headers=auth)
    holding = client.post(
        f"/api/v1/customers/{customer['id']}/holdings", json={"product_id": product["id"], "quantity": 3}, headers=auth
    ).json()
    client.patch(f"/api/v1/holdings/{holding['id']}", json={"quantity": 2, "reason": "used"}, headers=auth)

    r = client.get(f"/api/v1/customers/{customer['id']}/timeline", headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    events = body["events"]
    assert body["total"] == 6
    assert [e["type"] for e in events[-2:]] == ["transaction", "appointment"]
    assert events[0]["type"] == "holding_change"
    assert events[0]["title"] == "Holding Shampoo -1"

    appointment_event = events[-1]
    assert appointment_event["id"] == f"appointment-{appointment['id']}"
    assert appointment_event["description"] == "first visit"
    assert appointment_event["details"]["status"] == "scheduled"
    assert events[-2]["title"] == "Transaction: 30,000"

    points = {e["details"]["delta"]: e for e in events if e["type"] == "points"}
    assert points[100]["details"]["balance"] == 100
    assert points[-30]["title"] == "Points -30 (balance 70)"
    assert points[-30]["description"] == "redeem"

    limited = client.get(f"/api/v1/customers/{customer['id']}/timeline", params={"limit": 2}, headers=auth).json()
    assert len(limited["events"]) == 2
    assert limited["total"] == 6

    assert client.get(f"/api/v1/customers/{customer['id']}/timeline", headers=other_auth).status_code == 404

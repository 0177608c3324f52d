from datetime import date, timedelta

import pytest

from salon_api.services.analytics import classify_segment, quintile_score, recency_score, sunday_first_weekday


def _post(client, auth, path, payload):
    r = client.post(f"/api/v1/{path}", json=payload, headers=auth)
    assert r.status_code == 201, r.text
    return r.json()


def _at(day, clock="10:00"):
    return f"{day.isoformat()}T{clock}:00"


def test_recency_thresholds():
    assert [recency_score(d) for d in (0, 30, 31, 60, 90, 180, 181)] == [5, 5, 4, 4, 3, 2, 1]


def test_quintile_score_ranks_from_the_top():
    values = [1, 2, 3, 4, 5, 5, 6, 7, 8, 9]
    assert quintile_score(9, values) == 5
    assert quintile_score(8, values) == 5
    assert quintile_score(5, values) == 3
    assert quintile_score(1, values) == 1
    assert quintile_score(3, []) == 1


def test_segment_rules_apply_in_order():
    assert classify_segment(4, 4, 4) == "vip"
    assert classify_segment(3, 3, 3) == "loyal"
    assert classify_segment(2, 2, 2) == "dormant"
    assert classify_segment(5, 2, 4) == "potential_vip"
    assert classify_segment(2, 3, 3) == "at_risk"
    assert classify_segment(3, 2, 5) == "regular"


def test_product_analytics(client, auth):
    today = date.today()
    recent, old = today - timedelta(days=5), today - timedelta(days=250)
    cut = _post(client, auth, "products", {"name": "Cut", "price": 30000})
    perm = _post(client, auth, "products", {"name": "Perm", "price": 100000})
    nail = _post(client, auth, "products", {"name": "Nail", "price": 20000})
    _post(client, auth, "products", {"name": "Shampoo", "price": 0, "active": False})

    booked = [
        _post(client, auth, "appointments", {"service_id": service["id"], "appointment_date": _at(day)})
        for service, day in ((cut, recent), (cut, recent), (perm, recent), (nail, recent), (cut, old))
    ]
    for appointment, amount, day in ((booked[0], 30000, recent), (booked[2], 100000, recent), (booked[4], 30000, old)):
        _post(client, auth, "transactions", {"appointment_id": appointment["id"], "amount": amount, "transaction_date": day.isoformat()})

    r = client.get("/api/v1/analytics/products", params={"months": 3}, headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    rows = {p["product_name"]: p for p in body["products"]}

    assert rows["Cut"]["sales_count"] == 2
    assert rows["Cut"]["total_revenue"] == 30000
    assert rows["Cut"]["avg_revenue"] == 15000
    assert rows["Cut"]["margin_rate"] == pytest.approx(70)
    assert rows["Cut"]["total_margin"] == pytest.approx(42000)
    assert rows["Cut"]["profitability_score"] == pytest.approx(14000)
    assert rows["Perm"]["profitability_score"] == pytest.approx(100000 * 0.7 / 3)
    assert rows["Shampoo"]["margin_rate"] == 0
    assert rows["Shampoo"]["active"] is False

    assert [p["product_name"] for p in body["top_profitability"]] == ["Perm", "Cut", "Nail"]
    assert [p["product_name"] for p in body["top_revenue"]][:2] == ["Perm", "Cut"]
    assert body["top_turnover"][0]["product_name"] == "Cut"
    assert [p["product_name"] for p in body["low_profitability"]] == ["Nail"]
    assert body["summary"] == {"total_products": 4, "active_products": 3, "months": 3}


def test_customer_segmentation(client, auth):
    today = date.today()
    vip = _post(client, auth, "customers", {"name": "Alpha"})
    fading = _post(client, auth, "customers", {"name": "Beta"})
    _post(client, auth, "customers", {"name": "Gamma"})
    for amount in (100000, 120000, 80000):
        _post(client, auth, "transactions", {
            "customer_id": vip["id"], "amount": amount, "transaction_date": (today - timedelta(days=5)).isoformat(),
        })
    _post(client, auth, "transactions", {
        "customer_id": fading["id"], "amount": 10000, "transaction_date": (today - timedelta(days=150)).isoformat(),
    })

    r = client.get("/api/v1/analytics/customer-segmentation", params={"period_days": 365}, headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total_customers"] == 3
    assert body["period_days"] == 365

    alpha, beta, gamma = body["customers"]
    assert (alpha["customer_name"], alpha["segment"]) == ("Alpha", "vip")
    assert (alpha["r_score"], alpha["f_score"], alpha["m_score"]) == (5, 5, 5)
    assert alpha["monetary"] == 300000
    assert alpha["frequency"] == 3
    assert alpha["recency"] <= 6

    assert (beta["customer_name"], beta["segment"]) == ("Beta", "potential_vip")
    assert (beta["r_score"], beta["f_score"], beta["m_score"]) == (2, 4, 4)

    assert (gamma["customer_name"], gamma["segment"]) == ("Gamma", "at_risk")
    assert gamma["recency"] == 365
    assert gamma["last_activity"] is None

    stats = body["segment_stats"]
    assert stats["vip"] == {"count": 1, "total_revenue": 300000, "avg_revenue": 300000}
    assert stats["potential_vip"]["count"] == 1
    assert stats["at_risk"]["count"] == 1
    assert stats["loyal"] == {"count": 0, "total_revenue": 0, "avg_revenue": 0}


def test_segmentation_window_excludes_older_activity(client, auth):
    customer = _post(client, auth, "customers", {"name": "Old"})
    _post(client, auth, "transactions", {
        "customer_id": customer["id"], "amount": 50000, "transaction_date": (date.today() - timedelta(days=120)).isoformat(),
    })
    row = client.get("/api/v1/analytics/customer-segmentation", headers=auth).json()["customers"][0]
    assert row["monetary"] == 0
    assert row["recency"] == 90
    assert row["transaction_count"] == 0


def test_appointment_patterns(client, auth):
    day = date.today() - timedelta(days=7)
    cut = _post(client, auth, "products", {"name": "Cut", "price": 30000})
    perm = _post(client, auth, "products", {"name": "Perm", "price": 100000})
    choi = _post(client, auth, "staff", {"name": "Choi"})
    lee = _post(client, auth, "staff", {"name": "Lee"})
    for service, member, when in (
        (cut, choi, _at(day)),
        (cut, choi, _at(day)),
        (perm, lee, _at(day)),
        (cut, lee, _at(day - timedelta(days=1), "15:00")),
        (cut, lee, _at(day - timedelta(days=200))),
    ):
        _post(client, auth, "appointments", {"service_id": service["id"], "staff_id": member["id"], "appointment_date": when})

    r = client.get("/api/v1/analytics/appointments", headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["summary"] == {"total_appointments": 4, "months": 3}

    assert len(body["hourly"]) == 24
    assert body["hourly"][10]["count"] == 3
    assert body["hourly"][15]["count"] == 1
    assert body["top_hours"][0] == {"hour": 10, "count": 3}
    assert len(body["top_hours"]) == 5

    weekday = (day.weekday() + 1) % 7
    assert body["weekdays"][weekday]["count"] == 3
    assert body["weekdays"][0]["label"] == "Sunday"
    assert body["top_weekdays"][0]["day"] == weekday

    assert [(s["name"], s["count"]) for s in body["top_services"]] == [("Cut", 3), ("Perm", 1)]
    assert body["total_services"] == 2
    assert sorted((s["name"], s["count"]) for s in body["top_staff"]) == [("Choi", 2), ("Lee", 2)]
    assert sum(m["count"] for m in body["monthly_trends"]) == 4


def test_sunday_first_weekday():
    sunday = date(2026, 10, 18)
    assert sunday_first_weekday(sunday) == 0
    assert sunday_first_weekday(sunday + timedelta(days=6)) == 6


def test_analytics_are_owner_scoped(client, auth, other_auth):
    _post(client, auth, "customers", {"name": "Mine"})
    _post(client, auth, "products", {"name": "Cut", "price": 30000})
    assert client.get("/api/v1/analytics/customer-segmentation", headers=other_auth).json()["total_customers"] == 0
    assert client.get("/api/v1/analytics/products", headers=other_auth).json()["products"] == []

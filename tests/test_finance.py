from datetime import date

import pytest

from salon_api.services.finance import forecast_series, seasonality
from salon_api.services.staff import months_ago


def _seed_ledger(client, auth):
    for day, amount, category in (("2026-10-05", 100000, "Perm"), ("2026-10-10", 50000, "Cut")):
        r = client.post(
            "/api/v1/transactions",
            json={"amount": amount, "category": category, "payment_method": "card", "transaction_date": day},
            headers=auth,
        )
        assert r.status_code == 201, r.text
    for day, amount, category, memo in (("2026-10-07", 30000, "materials", "dye"), ("2026-09-30", 900000, "rent", None)):
        r = client.post(
            "/api/v1/expenses",
            json={"expense_date": day, "amount": amount, "category": category, "memo": memo},
            headers=auth,
        )
        assert r.status_code == 201, r.text


def test_transaction_defaults_to_today(client, auth):
    r = client.post("/api/v1/transactions", json={"amount": 1000, "notes": "  "}, headers=auth)
    assert r.status_code == 201
    assert r.json()["transaction_date"] == date.today().isoformat()
    assert r.json()["notes"] is None


def test_transaction_update_and_delete(client, auth):
    tx = client.post("/api/v1/transactions", json={"amount": 1000}, headers=auth).json()
    r = client.put(f"/api/v1/transactions/{tx['id']}", json={"amount": 2500, "payment_method": "cash"}, headers=auth)
    assert r.json()["amount"] == 2500
    assert r.json()["payment_method"] == "cash"
    assert client.get("/api/v1/transactions", params={"search": "cash"}, headers=auth).json()[0]["id"] == tx["id"]
    assert client.delete(f"/api/v1/transactions/{tx['id']}", headers=auth).status_code == 204
    assert client.get("/api/v1/transactions", headers=auth).json() == []


def test_expense_validation_and_range(client, auth):
    assert client.post(
        "/api/v1/expenses", json={"expense_date": "2026-10-01", "amount": 0, "category": "rent"}, headers=auth
    ).status_code == 422
    _seed_ledger(client, auth)

    rows = client.get("/api/v1/expenses", params={"from": "2026-10-01", "to": "2026-10-31"}, headers=auth).json()
    assert [e["category"] for e in rows] == ["materials"]

    expense_id = rows[0]["id"]
    r = client.put(f"/api/v1/expenses/{expense_id}", json={"amount": 35000}, headers=auth)
    assert r.json()["amount"] == 35000
    assert r.json()["category"] == "materials"


def test_finance_summary(client, auth):
    _seed_ledger(client, auth)
    params = {"from": "2026-10-01", "to": "2026-10-31"}

    summary = client.get("/api/v1/finance/summary", params=params, headers=auth).json()
    assert summary["total"] == 3
    assert summary["sum_income"] == 150000
    assert summary["sum_expense"] == 30000
    assert summary["profit"] == 120000
    assert [(r["type"], r["date"], r["memo"]) for r in summary["rows"]] == [
        ("income", "2026-10-10", "Cut"),
        ("expense", "2026-10-07", "materials"),
        ("income", "2026-10-05", "Perm"),
    ]

    expenses_only = client.get("/api/v1/finance/summary", params={**params, "types": "expense"}, headers=auth).json()
    assert expenses_only["total"] == 1
    assert expenses_only["sum_income"] == 150000

    by_amount = client.get(
        "/api/v1/finance/summary", params={**params, "sort_key": "amount", "sort_dir": "asc"}, headers=auth
    ).json()
    assert [r["amount"] for r in by_amount["rows"]] == [30000, 50000, 100000]

    paged = client.get("/api/v1/finance/summary", params={**params, "page_size": 2, "page": 2}, headers=auth).json()
    assert paged["total_pages"] == 2
    assert len(paged["rows"]) == 1

    assert client.get("/api/v1/finance/summary", params={"types": "refund"}, headers=auth).status_code == 400
    assert client.get("/api/v1/finance/summary", params={"sort_key": "memo"}, headers=auth).status_code == 422


def test_empty_finance_summary(client, auth):
    summary = client.get("/api/v1/finance/summary", headers=auth).json()
    assert summary["rows"] == []
    assert summary["total_pages"] == 1
    assert summary["profit"] == 0


def test_budget_overview(client, auth, other_auth):
    for category, amount in (("materials", 40000), ("rent", 1000000), ("marketing", 10000)):
        r = client.put(
            "/api/v1/finance/budget", json={"category": category, "month": "2026-10", "budget_amount": amount}, headers=auth
        )
        assert r.status_code == 200, r.text
    for day, amount, category in (
        ("2026-10-03", 35000, "materials"),
        ("2026-10-04", 15000, "marketing"),
        ("2026-10-05", 5000, "supplies"),
        ("2026-11-01", 99999, "materials"),
    ):
        client.post("/api/v1/expenses", json={"expense_date": day, "amount": amount, "category": category}, headers=auth)

    body = client.get("/api/v1/finance/budget", params={"month": "2026-10"}, headers=auth).json()
    rows = body["budgets"]
    assert [r["category"] for r in rows] == ["marketing", "materials", "rent", "supplies"]
    marketing, materials, rent, supplies = rows
    assert (marketing["spent_amount"], marketing["percentage"], marketing["is_over_budget"], marketing["remaining"]) == (
        15000, 150.0, True, -5000
    )
    assert (materials["percentage"], materials["is_warning"], materials["is_over_budget"]) == (87.5, True, False)
    assert (rent["spent_amount"], rent["percentage"], rent["is_warning"]) == (0, 0, False)
    assert supplies["id"] is None
    assert (supplies["budget_amount"], supplies["spent_amount"]) == (0, 5000)
    assert body["summary"] == {
        "total_budget": 1050000,
        "total_spent": 50000,
        "total_remaining": 1000000,
        "over_budget_count": 1,
        "warning_count": 1,
    }

    r = client.put(
        "/api/v1/finance/budget", json={"category": "materials", "month": "2026-10", "budget_amount": 50000}, headers=auth
    )
    assert r.json()["id"] == materials["id"]
    assert r.json()["budget_amount"] == 50000

    assert client.delete(f"/api/v1/finance/budget/{rent['id']}", headers=other_auth).status_code == 404
    assert client.delete(f"/api/v1/finance/budget/{rent['id']}", headers=auth).status_code == 204
    assert client.delete(f"/api/v1/finance/budget/{rent['id']}", headers=auth).status_code == 404
    assert client.get("/api/v1/finance/budget", params={"month": "2026-10"}, headers=other_auth).json()["budgets"] == []


def test_budget_validation(client, auth):
    bad = {"category": "rent", "month": "2026-13", "budget_amount": 10}
    assert client.put("/api/v1/finance/budget", json=bad, headers=auth).status_code == 422
    bad = {"category": "rent", "month": "2026-10", "budget_amount": -1}
    assert client.put("/api/v1/finance/budget", json=bad, headers=auth).status_code == 422
    assert client.get("/api/v1/finance/budget", params={"month": "October"}, headers=auth).status_code == 422
    body = client.get("/api/v1/finance/budget", headers=auth).json()
    assert body["month"] == date.today().strftime("%Y-%m")
    assert body["budgets"] == []


def test_forecast_series_shapes():
    empty = forecast_series([])
    assert (empty.predicted_next_month, empty.predicted_next_quarter, empty.confidence) == (0, [0, 0, 0], 0)

    short = forecast_series([("2026-02", 200.0), ("2026-01", 100.0)])
    assert [p.month for p in short.data] == ["2026-01", "2026-02"]
    assert (short.trend, short.predicted_next_month, short.predicted_next_quarter) == (0, 200, [200, 0, 0])
    assert short.confidence == 0.3

    rising = forecast_series([("2026-01", 100.0), ("2026-02", 200.0), ("2026-03", 300.0)])
    assert rising.trend == pytest.approx(100)
    assert rising.predicted_next_month == pytest.approx(400)
    assert rising.predicted_next_quarter == pytest.approx([400, 500, 600])
    assert [p.predicted for p in rising.data] == pytest.approx([100, 200, 300])
    assert rising.confidence == pytest.approx(1 - (20000 / 3) ** 0.5 / 200)

    falling = forecast_series([("2026-01", 300.0), ("2026-02", 100.0), ("2026-03", 0.0)])
    assert falling.predicted_next_month == 0
    assert falling.confidence == 0.1


def test_seasonality_averages_calendar_months():
    assert seasonality([("2025-03", 100.0), ("2026-03", 300.0), ("2026-04", 50.0)]) == {3: 200, 4: 50}


def test_finance_forecast(client, auth):
    today = date.today()
    last_month = months_ago(today, 1)
    for day, amount in ((today, 120000), (last_month, 80000), (months_ago(today, 14), 999999)):
        client.post("/api/v1/transactions", json={"amount": amount, "transaction_date": day.isoformat()}, headers=auth)
    client.post(
        "/api/v1/expenses", json={"expense_date": today.isoformat(), "amount": 30000, "category": "rent"}, headers=auth
    )

    r = client.get("/api/v1/finance/forecast", headers=auth)
    assert r.status_code == 200, r.text
    body = r.json()
    assert [p["month"] for p in body["revenue"]["historical"]] == [last_month.strftime("%Y-%m"), today.strftime("%Y-%m")]
    assert body["revenue"]["forecast"]["predicted_next_month"] == 120000
    assert body["expenses"]["forecast"]["predicted_next_month"] == 30000
    assert body["profit"]["predicted_next_month"] == 90000
    assert body["profit"]["predicted_next_quarter"] == [90000, 0, 0]
    assert body["summary"]["avg_recent_revenue"] == 100000
    assert body["summary"]["months"] == 12
    assert client.get("/api/v1/finance/forecast", params={"months": 0}, headers=auth).status_code == 422


def test_monthly_and_quarterly_reports(client, auth):
    _seed_ledger(client, auth)
    client.post(
        "/api/v1/transactions", json={"amount": 20000, "type": "voucher", "transaction_date": "2026-11-03"}, headers=auth
    )

    monthly = client.get("/api/v1/finance/reports", params={"year": 2026, "month": 10}, headers=auth).json()
    assert (monthly["type"], monthly["period"], monthly["month"], monthly["quarter"]) == ("monthly", "2026-10", 10, None)
    assert (monthly["date_from"], monthly["date_to"]) == ("2026-10-01", "2026-10-31")
    assert monthly["summary"] == {"revenue": 150000, "expenses": 30000, "profit": 120000, "vat": 15000}
    assert monthly["revenue_details"] == [{"category": "sales", "amount": 150000}]
    assert monthly["expense_details"] == [{"category": "materials", "amount": 30000}]
    assert (monthly["transaction_count"], monthly["expense_count"]) == (2, 1)

    q3 = client.get(
        "/api/v1/finance/reports", params={"type": "quarterly", "year": 2026, "quarter": 3}, headers=auth
    ).json()
    assert (q3["period"], q3["month"], q3["quarter"], q3["date_to"]) == ("2026-Q3", None, 3, "2026-09-30")
    assert q3["summary"] == {"revenue": 0, "expenses": 900000, "profit": -900000, "vat": 0}

    q4 = client.get(
        "/api/v1/finance/reports", params={"type": "quarterly", "year": 2026, "quarter": 4}, headers=auth
    ).json()
    assert q4["summary"]["revenue"] == 170000
    assert q4["revenue_details"] == [{"category": "sales", "amount": 150000}, {"category": "voucher", "amount": 20000}]

    assert client.get("/api/v1/finance/reports", params={"type": "yearly"}, headers=auth).status_code == 422
    assert client.get("/api/v1/finance/reports", params={"month": 13}, headers=auth).status_code == 422

from datetime import date, timedelta


def _customer(client, auth):
    return client.post("/api/v1/customers", json={"name": "Kim"}, headers=auth).json()["id"]


def _product(client, auth, name="Treatment Kit"):
    return client.post("/api/v1/products", json={"name": name, "price": 10000}, headers=auth).json()["id"]


def test_points_balance_ledger_and_report(client, auth):
    customer_id = _customer(client, auth)
    url = f"/api/v1/customers/{customer_id}/points"

    assert client.get(url, headers=auth).json() == {"balance": 0, "ledger": None}

    for delta, reason in ((100, "visit"), (50, "visit"), (-30, "redeem"), (5, None)):
        r = client.post(url, json={"delta": delta, "reason": reason}, headers=auth)
        assert r.status_code == 201, r.text
    assert r.json()["balance"] == 125

    r = client.get(url, params={"with_ledger": True}, headers=auth)
    body = r.json()
    assert body["balance"] == 125
    assert [e["delta"] for e in body["ledger"]] == [5, -30, 50, 100]

    report = client.get(f"{url}/report", headers=auth).json()
    assert report["total_add"] == 155
    assert report["total_deduct"] == 30
    assert report["net"] == 125
    assert report["by_reason"][0] == {"reason": "visit", "sum": 150, "count": 2}
    assert {"reason": "other", "sum": 5, "count": 1} in report["by_reason"]


def test_points_zero_delta_rejected(client, auth):
    customer_id = _customer(client, auth)
    r = client.post(f"/api/v1/customers/{customer_id}/points", json={"delta": 0}, headers=auth)
    assert r.status_code == 422


def test_points_unknown_customer(client, auth):
    r = client.get("/api/v1/customers/00000000-0000-0000-0000-000000000000/points", headers=auth)
    assert r.status_code == 404


def test_voucher_issue_and_use(client, auth):
    customer_id = _customer(client, auth)
    r = client.post(
        f"/api/v1/customers/{customer_id}/vouchers", json={"name": " Spring pass ", "total_amount": 50000}, headers=auth
    )
    assert r.status_code == 201
    voucher = r.json()
    assert voucher["name"] == "Spring pass"
    assert voucher["remaining_amount"] == 50000

    r = client.post(f"/api/v1/vouchers/{voucher['id']}/use", json={"amount": 20000}, headers=auth)
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["remaining_amount"] == 30000

    r = client.post(f"/api/v1/vouchers/{voucher['id']}/use", json={"amount": 40000}, headers=auth)
    assert r.status_code == 400
    assert "Insufficient" in r.json()["error"]["message"]

    uses = client.get(f"/api/v1/vouchers/{voucher['id']}/uses", headers=auth).json()
    assert [u["amount"] for u in uses] == [20000]

    vouchers = client.get(f"/api/v1/customers/{customer_id}/vouchers", headers=auth).json()
    assert vouchers[0]["remaining_amount"] == 30000


def test_expired_voucher_cannot_be_used(client, auth):
    customer_id = _customer(client, auth)
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    voucher = client.post(
        f"/api/v1/customers/{customer_id}/vouchers",
        json={"name": "Old", "total_amount": 10000, "expires_at": yesterday},
        headers=auth,
    ).json()
    r = client.post(f"/api/v1/vouchers/{voucher['id']}/use", json={"amount": 1000}, headers=auth)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Voucher has expired"


def test_holdings_and_ledger(client, auth):
    customer_id = _customer(client, auth)
    product_id = _product(client, auth)

    r = client.post(
        f"/api/v1/customers/{customer_id}/holdings", json={"product_id": product_id, "quantity": 3}, headers=auth
    )
    assert r.status_code == 201
    holding = r.json()
    assert holding["product_name"] == "Treatment Kit"

    r = client.patch(f"/api/v1/holdings/{holding['id']}", json={"quantity": 1, "reason": "used"}, headers=auth)
    assert r.status_code == 200
    assert r.json()["quantity"] == 1

    r = client.patch(f"/api/v1/holdings/{holding['id']}", json={"quantity": 4, "no_ledger": True}, headers=auth)
    assert r.json()["quantity"] == 4

    r = client.post(f"/api/v1/holdings/{holding['id']}/ledger", json={"delta": -5}, headers=auth)
    assert r.status_code == 400

    r = client.post(f"/api/v1/holdings/{holding['id']}/ledger", json={"delta": 2, "reason": "refill"}, headers=auth)
    assert r.status_code == 201

    entries = client.get(f"/api/v1/holdings/{holding['id']}/ledger", headers=auth).json()
    assert sorted(e["delta"] for e in entries) == [-2, 2]

    by_customer = client.get(f"/api/v1/customers/{customer_id}/holdings/ledger", headers=auth).json()
    assert {e["product_name"] for e in by_customer} == {"Treatment Kit"}

    holdings = client.get(f"/api/v1/customers/{customer_id}/holdings", headers=auth).json()
    assert holdings[0]["quantity"] == 6

    assert client.delete(f"/api/v1/holdings/{holding['id']}", headers=auth).status_code == 204
    assert client.get(f"/api/v1/customers/{customer_id}/holdings", headers=auth).json() == []


def test_points_ledger_and_report_are_limited_to_half_open_range(client, auth, database):
    from datetime import datetime

    from sqlalchemy import create_engine, update

    from salon_api.db.models import PointsLedger

    customer_id = _customer(client, auth)
    url = f"/api/v1/customers/{customer_id}/points"
    stamps = {
        "before": (10, datetime(2026, 10, 4, 23, 59, 59)),
        "at_from": (20, datetime(2026, 10, 5)),
        "inside": (-5, datetime(2026, 10, 7, 12)),
        "at_to": (40, datetime(2026, 10, 10)),
        "after": (80, datetime(2026, 10, 11)),
    }
    for reason, (delta, _) in stamps.items():
        client.post(url, json={"delta": delta, "reason": reason}, headers=auth)

    sync_engine = create_engine(database.url.set(drivername="sqlite"))
    with sync_engine.begin() as conn:
        for reason, (_, created_at) in stamps.items():
            conn.execute(update(PointsLedger).where(PointsLedger.reason == reason).values(created_at=created_at))
    sync_engine.dispose()

    window = {"from": "2026-10-05T00:00:00", "to": "2026-10-10T00:00:00"}

    ledger = client.get(f"{url}/ledger", params=window, headers=auth).json()
    assert [e["reason"] for e in ledger] == ["inside", "at_from"]

    body = client.get(url, params={**window, "with_ledger": True}, headers=auth).json()
    assert body["balance"] == 145
    assert [e["reason"] for e in body["ledger"]] == ["inside", "at_from"]

    report = client.get(f"{url}/report", params=window, headers=auth).json()
    assert report["total_add"] == 20
    assert report["total_deduct"] == 5
    assert report["net"] == 15

    only_from = client.get(f"{url}/ledger", params={"from": window["from"]}, headers=auth).json()
    assert [e["reason"] for e in only_from] == ["after", "at_to", "inside", "at_from"]
    only_to = client.get(f"{url}/ledger", params={"to": window["to"]}, headers=auth).json()
    assert [e["reason"] for e in only_to] == ["inside", "at_from", "before"]

import uuid

from sqlalchemy.dialects import postgresql

from salon_api.repositories.customers import CustomerProductRepository, VoucherRepository
from salon_api.repositories.inventory import ProductRepository


def _compiled(repo_cls):
    repo = repo_cls(None, uuid.uuid4())
    return str(repo.locked_by_id(uuid.uuid4()).compile(dialect=postgresql.dialect()))


def test_balance_rows_are_selected_for_update():
    for repo_cls in (VoucherRepository, ProductRepository, CustomerProductRepository):
        sql = _compiled(repo_cls)
        assert sql.rstrip().endswith("FOR UPDATE")
        assert "owner_id" in sql


def test_voucher_cannot_be_overdrawn_by_successive_uses(client, auth):
    customer_id = client.post("/api/v1/customers", json={"name": "Kim"}, headers=auth).json()["id"]
    voucher = client.post(
        f"/api/v1/customers/{customer_id}/vouchers", json={"name": "Pass", "total_amount": 100}, headers=auth
    ).json()

    first = client.post(f"/api/v1/vouchers/{voucher['id']}/use", json={"amount": 80}, headers=auth)
    second = client.post(f"/api/v1/vouchers/{voucher['id']}/use", json={"amount": 80}, headers=auth)
    assert first.status_code == 200
    assert second.status_code == 400

    uses = client.get(f"/api/v1/vouchers/{voucher['id']}/uses", headers=auth).json()
    assert sum(u["amount"] for u in uses) == 80
    vouchers = client.get(f"/api/v1/customers/{customer_id}/vouchers", headers=auth).json()
    assert vouchers[0]["remaining_amount"] == 20


def test_stock_cannot_go_negative_across_sales(client, auth):
    product = client.post("/api/v1/products", json={"name": "Serum", "stock_count": 3}, headers=auth).json()
    sale = {"product_id": product["id"], "type": "sale", "quantity": 2}

    assert client.patch("/api/v1/inventory", json=sale, headers=auth).json()["after_count"] == 1
    assert client.patch("/api/v1/inventory", json=sale, headers=auth).status_code == 400
    assert client.get(f"/api/v1/products/{product['id']}", headers=auth).json()["stock_count"] == 1


def test_locked_lookup_is_owner_scoped(client, auth, other_auth):
    product = client.post("/api/v1/products", json={"name": "Serum", "stock_count": 3}, headers=auth).json()
    r = client.patch(
        "/api/v1/inventory", json={"product_id": product["id"], "type": "sale", "quantity": 1}, headers=other_auth
    )
    assert r.status_code == 404

def test_rows_are_invisible_to_other_owners(client, auth, other_auth):
    r = client.post("/api/v1/customers", json={"name": "Mine"}, headers=auth)
    customer_id = r.json()["id"]

    assert client.get(f"/api/v1/customers/{customer_id}", headers=other_auth).status_code == 404
    assert client.get("/api/v1/customers", headers=other_auth).json() == []
    assert client.put(f"/api/v1/customers/{customer_id}", json={"name": "Stolen"}, headers=other_auth).status_code == 404
    assert client.delete(f"/api/v1/customers/{customer_id}", headers=other_auth).status_code == 404

    # still intact for the owner
    assert client.get(f"/api/v1/customers/{customer_id}", headers=auth).json()["name"] == "Mine"


def test_foreign_references_are_rejected(client, auth, other_auth):
    customer_id = client.post("/api/v1/customers", json={"name": "Mine"}, headers=auth).json()["id"]
    product_id = client.post("/api/v1/products", json={"name": "Cut", "price": 20000}, headers=auth).json()["id"]

    r = client.post(
        "/api/v1/appointments",
        json={"customer_id": customer_id, "appointment_date": "2026-10-20T10:00:00"},
        headers=other_auth,
    )
    assert r.status_code == 404

    r = client.post("/api/v1/transactions", json={"customer_id": customer_id, "amount": 1000}, headers=other_auth)
    assert r.status_code == 404

    r = client.patch(
        "/api/v1/inventory", json={"product_id": product_id, "quantity": 1, "type": "purchase"}, headers=other_auth
    )
    assert r.status_code == 404


def test_owner_id_ignored_in_payload(client, auth, other_auth):
    me = client.get("/api/v1/auth/me", headers=other_auth).json()
    r = client.post("/api/v1/customers", json={"name": "Mine", "owner_id": me["id"]}, headers=auth)
    assert r.status_code == 201
    assert client.get("/api/v1/customers", headers=other_auth).json() == []

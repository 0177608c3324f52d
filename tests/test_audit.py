def test_mutations_are_audited(client, auth, other_auth):
    customer = client.post("/api/v1/customers", json={"name": "Kim"}, headers=auth).json()
    client.put(f"/api/v1/customers/{customer['id']}", json={"name": "Kim Minji"}, headers=auth)
    client.delete(f"/api/v1/customers/{customer['id']}", headers=auth)

    logs = client.get("/api/v1/audit/logs", headers=auth).json()
    assert [log["action_type"] for log in logs] == ["delete", "update", "create"]
    assert {log["resource_type"] for log in logs} == {"customers"}
    assert {log["resource_id"] for log in logs} == {customer["id"]}
    assert logs[0]["user_agent"] == "testclient"

    updates = client.get("/api/v1/audit/logs", params={"action_type": "update"}, headers=auth).json()
    assert len(updates) == 1
    assert updates[0]["old_data"]["name"] == "Kim"
    assert updates[0]["new_data"]["name"] == "Kim Minji"

    assert client.get("/api/v1/audit/logs", headers=other_auth).json() == []


def test_audit_filters(client, auth):
    client.post("/api/v1/products", json={"name": "Cut"}, headers=auth)
    client.post("/api/v1/staff", json={"name": "Choi"}, headers=auth)
    client.put("/api/v1/settings", json={"business_profile": {"store_name": "A"}}, headers=auth)

    staff_logs = client.get("/api/v1/audit/logs", params={"resource_type": "staff"}, headers=auth).json()
    assert len(staff_logs) == 1
    settings_logs = client.get("/api/v1/audit/logs", params={"resource_type": "settings"}, headers=auth).json()
    assert settings_logs[0]["new_data"]["business_profile"]["store_name"] == "A"

    assert client.get("/api/v1/audit/logs", params={"action_type": "merge"}, headers=auth).status_code == 422
    assert len(client.get("/api/v1/audit/logs", params={"limit": 2}, headers=auth).json()) == 2

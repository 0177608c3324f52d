def test_defaults_when_nothing_saved(client, auth):
    r = client.get("/api/v1/settings", headers=auth)
    assert r.status_code == 200
    body = r.json()
    assert set(body) == {"business_profile", "booking_settings", "financial_settings", "staff_settings", "system_settings"}
    assert body["business_profile"]["booking_advance_days"] == 14
    assert body["business_profile"]["business_hours"]["sunday"]["closed"] is True
    assert body["booking_settings"]["reminder_timings"] == [24, 3, 1]
    assert body["staff_settings"] == {}


def test_update_merges_sections(client, auth):
    client.get("/api/v1/settings", headers=auth)

    r = client.put(
        "/api/v1/settings",
        json={"business_profile": {"store_name": "Salon A"}, "staff_settings": {"commission_visible": True}},
        headers=auth,
    )
    assert r.status_code == 200
    assert r.json()["business_profile"]["store_name"] == "Salon A"
    assert r.json()["business_profile"]["booking_advance_days"] == 14

    r = client.put("/api/v1/settings", json={"system_settings": {"auto_logout_minutes": 60}}, headers=auth)
    body = r.json()
    assert body["business_profile"]["store_name"] == "Salon A"
    assert body["staff_settings"] == {"commission_visible": True}
    assert body["system_settings"]["auto_logout_minutes"] == 60
    assert body["system_settings"]["push_notifications_enabled"] is True

    # cached read reflects the update
    assert client.get("/api/v1/settings", headers=auth).json()["system_settings"]["auto_logout_minutes"] == 60


def test_settings_are_per_owner(client, auth, other_auth):
    client.put("/api/v1/settings", json={"business_profile": {"store_name": "Salon A"}}, headers=auth)
    assert client.get("/api/v1/settings", headers=other_auth).json()["business_profile"]["store_name"] == ""

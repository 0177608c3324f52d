from tests.conftest import register_and_login


def test_register_login_and_me(client):
    r = client.post(
        "/api/v1/auth/register",
        json={"email": "Owner@Example.com", "password": "secret123", "full_name": "Owner"},
    )
    assert r.status_code == 201
    assert r.json()["is_active"] is True
    assert r.json()["email"] == "owner@example.com"

    r = client.post("/api/v1/auth/login", data={"username": "owner@example.com", "password": "secret123"})
    assert r.status_code == 200
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]
    assert "access_token" in r.cookies

    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert r.status_code == 200
    assert r.json()["full_name"] == "Owner"


def test_duplicate_registration_is_rejected(client):
    register_and_login(client)
    r = client.post("/api/v1/auth/register", json={"email": "owner@example.com", "password": "another1"})
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == 400
    assert body["error"]["type"] == "http_error"
    assert "already exists" in body["error"]["message"]


def test_bad_credentials(client):
    register_and_login(client)
    r = client.post("/api/v1/auth/login", data={"username": "owner@example.com", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.headers.get("www-authenticate") == "Bearer"


def test_missing_or_invalid_token(client):
    r = client.get("/api/v1/customers")
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Not authenticated"

    r = client.get("/api/v1/customers", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_cookie_session_authenticates(client):
    register_and_login(client)
    r = client.post("/api/v1/auth/login", data={"username": "owner@example.com", "password": "secret123"})
    assert r.status_code == 200
    # cookie set by login is sent automatically
    assert client.get("/api/v1/auth/me").status_code == 200

    r = client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    client.cookies.clear()
    assert client.get("/api/v1/auth/me").status_code == 401


def test_refresh_token_flow(client):
    register_and_login(client)
    tokens = client.post(
        "/api/v1/auth/login", data={"username": "owner@example.com", "password": "secret123"}
    ).json()
    client.cookies.clear()

    r = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["access_token"]

    # an access token is not accepted as a refresh token
    r = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert r.status_code == 401


def test_refresh_token_is_not_an_access_token(client):
    register_and_login(client)
    tokens = client.post(
        "/api/v1/auth/login", data={"username": "owner@example.com", "password": "secret123"}
    ).json()
    client.cookies.clear()
    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert r.status_code == 401

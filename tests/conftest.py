import os

os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from salon_api.api.main import app
from salon_api.core.cache import response_cache
from salon_api.core.rate_limit import api_limiter, auth_limiter
from salon_api.db import session as db_session
from salon_api.db.base import Base


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Fresh SQLite database per test, wired into the app's session factory."""
    db_file = tmp_path / "salon.db"
    monkeypatch.setenv("POSTGRES_URL", f"sqlite+aiosqlite:///{db_file}")

    sync_engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    maker = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    monkeypatch.setattr(db_session, "_ENGINE", engine)
    monkeypatch.setattr(db_session, "_SESSION_MAKER", maker)

    api_limiter.reset()
    auth_limiter.reset()
    response_cache.clear()
    yield engine


@pytest.fixture
def client():
    return TestClient(app)


def register_and_login(client, email="owner@example.com", password="secret123"):
    r = client.post("/api/v1/auth/register", json={"email": email, "password": password, "full_name": "Owner"})
    assert r.status_code == 201, r.text
    r = client.post("/api/v1/auth/login", data={"username": email, "password": password})
    assert r.status_code == 200, r.text
    # Requests in tests authenticate explicitly with the bearer header.
    client.cookies.clear()
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth(client):
    return register_and_login(client)


@pytest.fixture
def other_auth(client):
    return register_and_login(client, email="other@example.com")

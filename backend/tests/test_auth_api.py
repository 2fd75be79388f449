import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from dashboard.api.deps import get_archive_store, get_session_factory
from dashboard.core.config import settings
from dashboard.db.init_db import ensure_seeded
from dashboard.db.session import get_db
from dashboard.main import app
from dashboard.models.activity_log import ActivityLog
from dashboard.models.user import Role


@pytest.fixture
def client(session_factory, store):
    with session_factory() as s:
        ensure_seeded(s)

    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_archive_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _login(client, password="admin123"):
    return client.post("/auth/login", json={"email": " Admin@Example.com ", "password": password})


def test_seed_creates_roles_once(session_factory):
    with session_factory() as s:
        ensure_seeded(s)
        ensure_seeded(s)
        names = sorted(s.scalars(select(Role.name)).all())
    assert names == ["Admin", "Author", "Editor", "User"]


def test_login_sets_cookies_and_me(client):
    r = _login(client)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["email"] == "admin@example.com"
    assert body["role"] == "Admin"
    assert body["csrf_token"]
    assert settings.jwt_cookie_name in client.cookies

    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json()["email"] == "admin@example.com"


def test_wrong_password_is_401(client):
    assert _login(client, password="nope123").status_code == 401


def test_cookie_session_can_create_backup_and_see_activity(client, session_factory):
    _login(client)
    r = client.post("/backups")
    assert r.status_code == 200, r.text
    backup_id = r.json()["id"]

    r = client.get("/activity/latest", params={"entity_type": "backup"})
    assert r.status_code == 200
    [entry] = r.json()
    assert entry["action"] == "created"
    assert entry["entity_id"] == backup_id
    assert entry["user"] == "admin@example.com"

    with session_factory() as s:
        actions = set(s.scalars(select(ActivityLog.action)).all())
    assert {"login", "created"} <= actions


def test_logout_clears_session(client):
    _login(client)
    assert client.post("/auth/logout").json() == {"ok": True}
    assert client.get("/auth/me").status_code == 401

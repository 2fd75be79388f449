import json

import pytest
from fastapi.testclient import TestClient

from dashboard.api.deps import get_archive_store, get_session_factory, require_auth
from dashboard.core.config import settings
from dashboard.main import app


@pytest.fixture
def client(session_factory, store, admin):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_archive_store] = lambda: store
    app.dependency_overrides[require_auth] = lambda: admin
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_create_then_list_get_download_delete(client, store):
    r = client.post("/backups")
    assert r.status_code == 200, r.text
    created = r.json()
    assert created["status"] == "COMPLETED"
    assert created["record_count"] == 1
    assert created["tables"][0] == "users"
    assert store.exists(created["file_name"])

    r = client.get("/backups")
    assert r.status_code == 200
    assert [b["id"] for b in r.json()] == [created["id"]]

    r = client.get(f"/backups/{created['id']}")
    assert r.status_code == 200
    assert r.json()["file_name"] == created["file_name"]

    r = client.get(f"/backups/{created['id']}/download")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/json")
    assert r.headers["content-disposition"] == f'attachment; filename="{created["file_name"]}"'
    assert r.headers["x-backup-id"] == created["id"]
    assert len(r.content) == created["file_size"]
    assert json.loads(r.content)["createdBy"] == "admin@example.com"

    r = client.delete(f"/backups/{created['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert not store.exists(created["file_name"])
    assert client.get(f"/backups/{created['id']}").status_code == 404


def test_list_limit_is_bounded(client):
    for _ in range(3):
        assert client.post("/backups").status_code == 200
    r = client.get("/backups", params={"limit": 2})
    assert len(r.json()) == 2
    assert client.get("/backups", params={"limit": 0}).status_code == 422
    assert client.get("/backups", params={"limit": settings.backup_list_max_limit + 1}).status_code == 422


def test_missing_record_and_missing_file_are_distinct_404s(client, store):
    r = client.get("/backups/does-not-exist/download")
    assert r.status_code == 404
    assert r.json()["detail"] == "Backup not found"

    created = client.post("/backups").json()
    store.delete(created["file_name"])
    r = client.get(f"/backups/{created['id']}/download")
    assert r.status_code == 404
    assert r.json()["detail"] == "Backup file not found on disk"


def test_delete_unknown_backup_is_404(client):
    r = client.delete("/backups/does-not-exist")
    assert r.status_code == 404
    assert r.json()["detail"] == "Backup not found"


def test_backups_require_auth(session_factory, store):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_archive_store] = lambda: store
    try:
        c = TestClient(app)
        assert c.get("/backups").status_code == 401
        assert c.post("/backups").status_code == 401
        assert c.delete("/backups/anything").status_code == 401
    finally:
        app.dependency_overrides.clear()


def test_daily_tasks_requires_token(client):
    assert client.post("/tasks/daily").status_code == 401
    assert client.post("/tasks/daily", headers={"X-Tasks-Token": "wrong"}).status_code == 401

    r = client.post("/tasks/daily", headers={"X-Tasks-Token": settings.tasks_daily_secret})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "stale_backups_failed": 0}

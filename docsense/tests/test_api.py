import pytest
from fastapi.testclient import TestClient

from conftest import auth_header, make_admin, make_document, make_user
from docsense.api.deps import get_db
from docsense.core.config import get_settings
from docsense.main import app
from docsense.models import User


@pytest.fixture()
def client(session_factory, db):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def people(db):
    return {
        "admin": make_admin(db),
        "owner": make_user(db, "owner"),
        "reader": make_user(db, "reader"),
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_then_wait_for_approval(client, db, people):
    payload = {
        "username": "newbie",
        "email": "Newbie@Example.com",
        "phone": "+15551234567",
        "password": "Secret123!",
        "password_confirm": "Secret123!",
    }
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201
    assert response.json()["is_approved"] is False

    duplicate = client.post("/api/auth/register", json=payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "conflict"

    login = client.post("/api/auth/login", json={"email": "newbie@example.com", "password": "Secret123!"})
    assert login.status_code == 403

    new_id = response.json()["id"]
    approve = client.post(f"/api/admin/requests/{new_id}/approve", headers=auth_header(people["admin"]))
    assert approve.status_code == 200

    login = client.post("/api/auth/login", json={"email": "newbie@example.com", "password": "Secret123!"})
    assert login.status_code == 200
    tokens = login.json()
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.json()["username"] == "newbie"

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    # a refresh token is not accepted as an access token
    rejected = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert rejected.status_code == 401


def test_register_rejects_mismatched_passwords(client):
    response = client.post(
        "/api/auth/register",
        json={
            "username": "newbie",
            "email": "newbie@example.com",
            "phone": "+15551234567",
            "password": "Secret123!",
            "password_confirm": "Other123!",
        },
    )
    assert response.status_code == 422


def test_requests_without_token_are_unauthenticated(client):
    response = client.get("/api/documents")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


def test_upload_and_list(client, people):
    owner = people["owner"]
    response = client.post(
        "/api/documents/upload",
        headers=auth_header(owner),
        files={"file": ("notes.txt", b"plain text notes", "text/plain")},
        data={"title": "Notes", "tags": "finance, q3"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["fileType"] == "txt"
    assert body["tags"] == ["finance", "q3"]
    assert body["status"] == "processed"

    listing = client.get("/api/documents", headers=auth_header(owner)).json()
    assert listing["total"] == 1
    # private documents stay hidden from other users
    assert client.get("/api/documents", headers=auth_header(people["reader"])).json()["total"] == 0


def test_search_matches_tags(client, people):
    owner = auth_header(people["owner"])
    client.post(
        "/api/documents/upload",
        headers=owner,
        files={"file": ("notes.txt", b"plain text notes", "text/plain")},
        data={"title": "Notes", "tags": "finance,quarterly"},
    )
    client.post(
        "/api/documents/upload",
        headers=owner,
        files={"file": ("memo.txt", b"lunch menu", "text/plain")},
        data={"title": "Memo"},
    )

    found = client.get("/api/documents", params={"q": "QUARTERLY"}, headers=owner).json()
    assert found["total"] == 1
    assert found["documents"][0]["title"] == "Notes"
    assert client.get("/api/documents", params={"q": "payroll"}, headers=owner).json()["total"] == 0


def test_oversized_upload_is_refused(client, people, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_upload_bytes", 8)
    response = client.post(
        "/api/documents/upload",
        headers=auth_header(people["owner"]),
        files={"file": ("big.txt", b"x" * 64, "text/plain")},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "File too large"


def test_upload_rejects_unsupported_type(client, people):
    response = client.post(
        "/api/documents/upload",
        headers=auth_header(people["owner"]),
        files={"file": ("tool.exe", b"MZ", "application/octet-stream")},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_full_download_workflow(client, db, people, upload_dir):
    document = make_document(db, people["owner"], upload_dir, is_public=True)
    reader = auth_header(people["reader"])
    admin = auth_header(people["admin"])

    status = client.get(f"/api/documents/{document.id}/download-status", headers=reader).json()
    assert status["status"] == "none"

    created = client.post(f"/api/documents/{document.id}/request-download", headers=reader, json={"reason": "audit"})
    assert created.status_code == 201
    request_id = created.json()["requestId"]

    again = client.post(f"/api/documents/{document.id}/request-download", headers=reader, json={"reason": "audit"})
    assert again.status_code == 409

    forbidden = client.patch(
        f"/api/documents/admin/download-requests/{request_id}", headers=reader, json={"action": "approve"}
    )
    assert forbidden.status_code == 403

    pending = client.get("/api/documents/admin/download-requests?status=pending", headers=admin).json()
    assert pending["totalRequests"] == 1
    assert pending["requests"][0]["requestedBy"]["username"] == "reader"

    decided = client.patch(
        f"/api/documents/admin/download-requests/{request_id}",
        headers=admin,
        json={"action": "approve", "maxDownloads": 2},
    )
    assert decided.status_code == 200
    token = decided.json()["downloadToken"]
    assert len(token) == 64

    twice = client.patch(
        f"/api/documents/admin/download-requests/{request_id}", headers=admin, json={"action": "reject"}
    )
    assert twice.status_code == 400
    assert twice.json()["code"] == "invalid_state"

    status = client.get(f"/api/documents/{document.id}/download-status", headers=reader).json()
    assert status["status"] == "approved"
    assert status["downloadToken"] == token

    for expected_count in (1, 2):
        response = client.get("/api/documents/download", params={"token": token}, headers=reader)
        assert response.status_code == 200
        assert response.content == b"quarterly audit"
        assert response.headers["x-download-count"] == str(expected_count)
        assert response.headers["x-max-downloads"] == "2"
        assert response.headers["content-disposition"].startswith("attachment;")

    exhausted = client.get("/api/documents/download", params={"token": token}, headers=reader)
    assert exhausted.status_code == 410
    assert exhausted.json()["code"] == "limit_exceeded"

    status = client.get(f"/api/documents/{document.id}/download-status", headers=reader).json()
    assert status["status"] == "expired"
    assert status["downloadToken"] == token

    detail = client.get(f"/api/documents/{document.id}", headers=reader).json()
    assert detail["downloadCount"] == 2
    assert detail["canDownloadDirectly"] is False


def test_unknown_token_is_not_found(client, people):
    response = client.get("/api/documents/download", params={"token": "0" * 64}, headers=auth_header(people["reader"]))
    assert response.status_code == 404


def test_view_is_inline_and_uncached(client, db, people, upload_dir):
    document = make_document(db, people["owner"], upload_dir)
    response = client.get(f"/api/documents/{document.id}/view", headers=auth_header(people["owner"]))
    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith("inline;")
    assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"

    denied = client.get(f"/api/documents/{document.id}/view", headers=auth_header(people["reader"]))
    assert denied.status_code == 403


def test_missing_file_is_not_found(client, db, people, upload_dir):
    document = make_document(db, people["owner"], upload_dir)
    (upload_dir / document.filename).unlink()
    response = client.get(f"/api/documents/{document.id}/view", headers=auth_header(people["owner"]))
    assert response.status_code == 404
    assert response.json()["detail"] == "File not found on server"


def test_download_of_missing_file_keeps_allowance(client, db, people, upload_dir):
    document = make_document(db, people["owner"], upload_dir, is_public=True)
    reader = auth_header(people["reader"])
    admin = auth_header(people["admin"])
    created = client.post(f"/api/documents/{document.id}/request-download", headers=reader, json={"reason": "audit"})
    request_id = created.json()["requestId"]
    decided = client.patch(
        f"/api/documents/admin/download-requests/{request_id}",
        headers=admin,
        json={"action": "approve", "maxDownloads": 1},
    )
    token = decided.json()["downloadToken"]

    (upload_dir / document.filename).unlink()
    response = client.get("/api/documents/download", params={"token": token}, headers=reader)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"

    status = client.get(f"/api/documents/{document.id}/download-status", headers=reader).json()
    assert status["status"] == "approved"
    assert status["downloadCount"] == 0


def test_delete_document(client, db, people, upload_dir):
    document = make_document(db, people["owner"], upload_dir, is_public=True)
    denied = client.delete(f"/api/documents/{document.id}", headers=auth_header(people["reader"]))
    assert denied.status_code == 403

    deleted = client.delete(f"/api/documents/{document.id}", headers=auth_header(people["owner"]))
    assert deleted.status_code == 200
    assert not (upload_dir / document.filename).exists()
    assert client.get(f"/api/documents/{document.id}", headers=auth_header(people["owner"])).status_code == 404


def test_admin_user_management(client, db, people):
    admin = auth_header(people["admin"])
    reader_id = people["reader"].id

    users = client.get("/api/admin/users", headers=admin).json()
    assert users["stats"]["total"] == 3

    assert client.get("/api/admin/users", headers=auth_header(people["reader"])).status_code == 403

    changed = client.put(f"/api/admin/users/{reader_id}/role", headers=admin, json={"role": "SUPERUSER"})
    assert changed.json()["role"] == "SUPERUSER"

    own = client.delete(f"/api/admin/users/{people['admin'].id}", headers=admin)
    assert own.status_code == 400
    assert own.json()["detail"] == "Cannot delete your own account"

    removed = client.delete(f"/api/admin/users/{reader_id}", headers=admin)
    assert removed.status_code == 200
    assert db.query(User).filter(User.id == reader_id).first() is None

    audit = client.get("/api/admin/audit", headers=admin).json()
    assert audit["total"] >= 2


def test_roles_endpoints(client, people):
    admin = auth_header(people["admin"])
    created = client.post("/api/roles", headers=admin, json={"name": "auditor", "display_name": "Auditor"})
    assert created.status_code == 201
    assert created.json()["user_count"] == 0

    listed = client.get("/api/roles", headers=auth_header(people["reader"])).json()
    assert {r["name"] for r in listed} == {"SUPERUSER", "USER", "AUDITOR"}

    denied = client.post("/api/roles", headers=auth_header(people["reader"]), json={"name": "x2", "display_name": "X2"})
    assert denied.status_code == 403

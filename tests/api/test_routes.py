"""API tests: HTTP surface over the managers, backed by the test database"""

import zipfile
from io import BytesIO

import pytest
from httpx import ASGITransport, AsyncClient

from report_service.api.dependencies import (
    get_attachment_manager,
    get_export_assembler,
    get_report_manager,
    get_user_manager,
)
from report_service.infrastructure.database.client import get_db
from report_service.infrastructure.storage import get_storage_provider
from report_service.main import app

OWNER = {"X-User-ID": "google-owner"}
STRANGER = {"X-User-ID": "google-stranger"}


@pytest.fixture
async def client(db_session, storage, user_manager, report_manager, attachment_manager, export_assembler):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_provider] = lambda: storage
    app.dependency_overrides[get_user_manager] = lambda: user_manager
    app.dependency_overrides[get_report_manager] = lambda: report_manager
    app.dependency_overrides[get_attachment_manager] = lambda: attachment_manager
    app.dependency_overrides[get_export_assembler] = lambda: export_assembler

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.mark.api
class TestUserRoutes:

    async def test_session_sync_creates_then_resyncs(self, client):
        body = {"email": "new@example.com", "username": "Newcomer", "avatar_url": "a.png"}
        headers = {"X-User-ID": "google-new"}

        first = await client.post("/api/v1/users/session", json=body, headers=headers)
        second = await client.post(
            "/api/v1/users/session", json={**body, "username": "Renamed"}, headers=headers
        )

        assert first.status_code == 200
        assert second.json()["user_id"] == first.json()["user_id"]
        assert second.json()["username"] == "Renamed"

    async def test_session_profile_collision_gets_409(self, client, owner, stranger):
        response = await client.post(
            "/api/v1/users/session",
            json={"email": "stranger@example.com", "username": owner.username, "avatar_url": ""},
            headers=STRANGER
        )

        assert response.status_code == 409

    async def test_session_requires_identity_header(self, client):
        response = await client.post(
            "/api/v1/users/session", json={"email": "x@example.com", "username": "x"}
        )
        assert response.status_code == 422


@pytest.mark.api
class TestReportRoutes:

    async def test_requires_identity(self, client):
        response = await client.post("/api/v1/reports")

        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}

    async def test_unknown_subject_is_unauthorized(self, client, owner):
        response = await client.get("/api/v1/reports", headers={"X-User-ID": "never-signed-in"})
        assert response.status_code == 401

    async def test_create_edit_list(self, client, owner):
        created = await client.post("/api/v1/reports", headers=OWNER)
        assert created.status_code == 201
        report_id = created.json()["report_id"]

        updated = await client.put(
            f"/api/v1/reports/{report_id}",
            json={"title": "Fallen tree", "description": "Blocks the bike lane", "tags": ["tree"]},
            headers=OWNER
        )
        assert updated.status_code == 200
        assert updated.json()["title"] == "Fallen tree"

        listed = await client.get("/api/v1/reports", headers=OWNER)
        assert [r["report_id"] for r in listed.json()] == [report_id]

        tags = await client.get("/api/v1/reports/tags/recent", headers=OWNER)
        assert tags.json() == {"tags": ["tree"]}

    async def test_stranger_gets_401(self, client, owner, stranger, report_id):
        response = await client.get(f"/api/v1/reports/{report_id}", headers=STRANGER)
        assert response.status_code == 401

    async def test_missing_report_gets_404(self, client, owner):
        response = await client.get("/api/v1/reports/missing", headers=OWNER)
        assert response.status_code == 404

    async def test_delete_with_attachments_gets_409(self, client, owner, report_id):
        await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "document", "title": "Notes"},
            headers=OWNER
        )

        response = await client.delete(f"/api/v1/reports/{report_id}", headers=OWNER)

        assert response.status_code == 409

    async def test_delete_empty_report(self, client, owner, report_id):
        response = await client.delete(f"/api/v1/reports/{report_id}", headers=OWNER)
        assert response.status_code == 204

        assert (await client.get(f"/api/v1/reports/{report_id}", headers=OWNER)).status_code == 404

    async def test_discard(self, client, owner, report_id):
        response = await client.post(f"/api/v1/reports/{report_id}/discard", headers=OWNER)

        assert response.status_code == 200
        assert response.json() == {"report_id": report_id, "discarded": True}

    async def test_export_download(self, client, owner, report_id, make_png):
        await client.put(
            f"/api/v1/reports/{report_id}",
            json={"title": "Case #1", "description": "d", "tags": []},
            headers=OWNER
        )
        await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "picture"},
            files={"file": ("street photo.png", make_png(), "image/png")},
            headers=OWNER
        )

        response = await client.get(f"/api/v1/reports/{report_id}/export", headers=OWNER)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"] == f'attachment; filename="case__1-{report_id}.zip"'
        with zipfile.ZipFile(BytesIO(response.content)) as archive:
            assert "case__1-report.pdf" in archive.namelist()

    async def test_export_by_stranger(self, client, owner, stranger, report_id):
        response = await client.get(f"/api/v1/reports/{report_id}/export", headers=STRANGER)
        assert response.status_code == 401


@pytest.mark.api
class TestAttachmentRoutes:

    async def test_create_with_file_and_location(self, client, storage, owner, report_id, make_png):
        response = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={
                "media_type": "picture",
                "title": "Crack",
                "location": '{"longitude": 2.35, "latitude": 48.85}',
                "metadata": '{"camera": "rear"}'
            },
            files={"file": ("crack.png", make_png(), "image/png")},
            headers=OWNER
        )

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Crack"
        assert body["location"] == {"longitude": 2.35, "latitude": 48.85}
        assert body["metadata"] == {"camera": "rear"}
        assert body["media_url"] in storage.blobs

    async def test_invalid_location_gets_400(self, client, owner, report_id):
        response = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "document", "location": "not json"},
            headers=OWNER
        )
        assert response.status_code == 400

    async def test_non_object_metadata_gets_400_and_writes_nothing(self, client, owner, report_id):
        response = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "document", "metadata": "[1, 2]"},
            headers=OWNER
        )

        assert response.status_code == 400
        listed = await client.get(f"/api/v1/reports/{report_id}/attachments", headers=OWNER)
        assert listed.status_code == 200
        assert listed.json() == []

    async def test_empty_file_gets_400(self, client, owner, report_id):
        response = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "audio"},
            files={"file": ("silence.mp3", b"", "audio/mpeg")},
            headers=OWNER
        )
        assert response.status_code == 400

    async def test_upload_failure_gets_502(self, client, storage, owner, report_id, make_png):
        storage.fail_uploads = True

        response = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "picture"},
            files={"file": ("a.png", make_png(), "image/png")},
            headers=OWNER
        )

        assert response.status_code == 502
        counts = await client.get(f"/api/v1/reports/{report_id}/attachments/counts", headers=OWNER)
        assert counts.json()["total"] == 0

    async def test_attachment_lifecycle(self, client, storage, owner, report_id, make_png):
        created = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "sketch"},
            files={"file": ("sketch.png", make_png(), "image/png")},
            headers=OWNER
        )
        attachment_id = created.json()["attachment_id"]

        patched = await client.patch(
            f"/api/v1/attachments/{attachment_id}", json={"description": "Layout"}, headers=OWNER
        )
        assert patched.json()["description"] == "Layout"
        assert patched.json()["title"] == "Untitled Attachment"

        replaced = await client.put(
            f"/api/v1/attachments/{attachment_id}/media",
            files={"file": ("sketch2.png", make_png(color=(0, 255, 0)), "image/png")},
            headers=OWNER
        )
        assert replaced.json()["media_url"] != created.json()["media_url"]

        removed = await client.delete(f"/api/v1/attachments/{attachment_id}/media", headers=OWNER)
        assert removed.json()["media_url"] == "null"
        assert storage.blobs == {}

        counts = await client.get(f"/api/v1/reports/{report_id}/attachments/counts", headers=OWNER)
        assert counts.json()["counts"]["sketch"] == 1
        assert counts.json()["total"] == 1

        deleted = await client.delete(f"/api/v1/attachments/{attachment_id}", headers=OWNER)
        assert deleted.status_code == 204
        assert (await client.get(f"/api/v1/attachments/{attachment_id}", headers=OWNER)).status_code == 404

    async def test_stranger_cannot_touch_attachment(self, client, owner, stranger, report_id):
        created = await client.post(
            f"/api/v1/reports/{report_id}/attachments",
            data={"media_type": "document"},
            headers=OWNER
        )
        attachment_id = created.json()["attachment_id"]

        assert (await client.get(f"/api/v1/attachments/{attachment_id}", headers=STRANGER)).status_code == 401
        assert (await client.delete(f"/api/v1/attachments/{attachment_id}", headers=STRANGER)).status_code == 401
        assert (await client.get(f"/api/v1/reports/{report_id}/attachments", headers=STRANGER)).status_code == 401


@pytest.mark.api
class TestDetailedHealth:

    async def test_detailed_health(self, client):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage_available"] is True
        assert body["database_available"] is True

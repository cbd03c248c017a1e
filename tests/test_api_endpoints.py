"""Tests for the storage service HTTP API."""

import uuid
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from ttstorage.dependencies import get_file_service, set_object_storage
from ttstorage.main import app
from ttstorage.routes.file_routes import content_disposition

ERROR_FIELDS = {"timestamp", "code", "status", "path", "error", "message"}


@pytest.fixture
def client(file_service, object_storage):
    """
    Test client with the file service wired to the in-memory store.

    Used without a context manager so startup never contacts a real bucket.
    """
    app.dependency_overrides[get_file_service] = lambda: file_service
    set_object_storage(object_storage)
    yield TestClient(app)
    app.dependency_overrides.clear()
    set_object_storage(None)


def upload(client, user_id, filename="a.txt", content=b"hello", visibility="PUBLIC", tags=None,
           content_type="text/plain"):
    data = {"userId": user_id, "visibility": visibility}
    if tags is not None:
        data["tags"] = tags
    return client.post(
        "/api/v1/files/upload",
        files={"file": (filename, content, content_type)},
        data=data,
    )


def parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def assert_error(response, status, code):
    assert response.status_code == status
    body = response.json()
    assert set(body) == ERROR_FIELDS
    assert body["status"] == status
    assert body["code"] == code
    return body


class TestServiceEndpoints:
    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"ready": True, "database": "ok", "storage": "ok"}

    def test_not_ready_when_storage_down(self, client, object_storage):
        object_storage.failing.add("ping")

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["ready"] is False
        assert response.json()["database"] == "ok"

    def test_unknown_route_uses_error_body(self, client):
        response = client.get("/api/v1/nope")

        body = assert_error(response, 404, "error.validation.failed")
        assert body["error"] == "Not Found"
        assert body["path"] == "/api/v1/nope"

    def test_wrong_method_uses_error_body(self, client):
        response = client.post("/api/v1/files/public")

        body = assert_error(response, 405, "error.validation.failed")
        assert body["error"] == "Method Not Allowed"
        assert "GET" in response.headers["allow"]

    def test_request_id_header(self, client):
        response = client.get("/health")

        assert uuid.UUID(response.headers["X-Request-ID"])


class TestUploadEndpoint:
    def test_upload(self, client, user1):
        response = upload(client, user1, tags=["Work,travel"])

        assert response.status_code == 200
        body = response.json()
        assert body["filename"] == "a.txt"
        assert body["userId"] == user1
        assert body["tags"] == ["travel", "work"]
        assert body["size"] == 5
        assert body["visibility"] == "PUBLIC"
        assert body["contentType"] == "text/plain"
        assert body["downloadLink"] == f"http://testserver/api/v1/files/{body['id']}/users/{user1}"
        assert body["createdAt"] == body["updatedAt"]

    def test_upload_registers_tags(self, client, user1):
        upload(client, user1, tags=["Work", "travel"])

        response = client.get("/api/v1/tags")

        assert response.json()["content"] == ["travel", "work"]

    def test_five_tags_accepted(self, client, user1):
        response = upload(client, user1, tags=["a,b,c,d,e"])

        assert response.status_code == 200
        assert len(response.json()["tags"]) == 5

    def test_six_tags_rejected(self, client, object_storage, user1):
        response = upload(client, user1, tags=["a,b,c,d,e,f"])

        assert_error(response, 400, "error.validation.failed")
        assert object_storage.objects == {}

    def test_missing_file(self, client, user1):
        response = client.post("/api/v1/files/upload", data={"userId": user1, "visibility": "PUBLIC"})

        assert_error(response, 400, "error.file.absent")

    def test_missing_user_id(self, client):
        response = client.post(
            "/api/v1/files/upload",
            files={"file": ("a.txt", b"x", "text/plain")},
            data={"visibility": "PUBLIC"},
        )

        assert_error(response, 400, "error.request.param.absent")

    def test_malformed_user_id(self, client):
        response = upload(client, "not-a-uuid")

        assert_error(response, 400, "error.validation.failed")

    def test_bad_visibility(self, client, user1):
        response = upload(client, user1, visibility="SECRET")

        body = assert_error(response, 400, "error.validation.failed")
        assert body["error"] == "ValidationError"

    def test_duplicate_upload(self, client, user1):
        upload(client, user1)

        response = upload(client, user1)

        body = assert_error(response, 400, "error.same.file")
        assert body["error"] == "DuplicateFile"
        assert body["path"] == "/api/v1/files/upload"
        assert body["message"] == "The file with the same filename already exists"

    def test_storage_failure(self, client, object_storage, user1):
        object_storage.failing.add("put_file")

        response = upload(client, user1)

        body = assert_error(response, 500, "error.file.upload")
        assert body["error"] == "StorageError"


class TestDownloadEndpoint:
    def test_download(self, client, user1):
        file_id = upload(client, user1, filename="report.txt", content=b"0123456789").json()["id"]

        response = client.get(f"/api/v1/files/{file_id}/users/{user1}")

        assert response.status_code == 200
        assert response.content == b"0123456789"
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["content-length"] == "10"
        assert response.headers["content-disposition"] == 'attachment; filename="report.txt"'

    def test_other_user_gets_not_found(self, client, user1, user2):
        file_id = upload(client, user1).json()["id"]

        response = client.get(f"/api/v1/files/{file_id}/users/{user2}")

        body = assert_error(response, 404, "error.file.not.found.or.access.denied")
        assert body["message"] == "file not found or user has no access to the file"

    def test_malformed_file_id(self, client, user1):
        response = client.get(f"/api/v1/files/abc/users/{user1}")

        assert_error(response, 400, "error.validation.failed")


class TestListingEndpoints:
    @pytest.fixture
    def uploaded(self, client, user1, user2):
        upload(client, user1, filename="a.txt", tags=["x"])
        upload(client, user1, filename="b.txt", visibility="PRIVATE", tags=["x"])
        upload(client, user2, filename="c.txt", tags=["y"])

    def test_public_listing(self, client, uploaded):
        response = client.get("/api/v1/files/public", params={"sort": "filename,asc"})

        assert response.status_code == 200
        body = response.json()
        assert [f["filename"] for f in body["content"]] == ["a.txt", "c.txt"]
        assert body["totalElements"] == 2
        assert body["totalPages"] == 1
        assert body["page"] == 0
        assert body["size"] == 20

    def test_public_listing_by_tag(self, client, uploaded):
        response = client.get("/api/v1/files/public", params={"tags": "Y"})

        assert [f["filename"] for f in response.json()["content"]] == ["c.txt"]

    def test_user_listing_includes_private(self, client, uploaded, user1):
        response = client.get(f"/api/v1/files/users/{user1}", params={"sort": "filename,desc"})

        assert [f["filename"] for f in response.json()["content"]] == ["b.txt", "a.txt"]

    def test_page_beyond_end(self, client, uploaded):
        response = client.get("/api/v1/files/public", params={"page": 9, "size": 1})

        body = response.json()
        assert body["content"] == []
        assert body["totalElements"] == 2
        assert body["totalPages"] == 2

    def test_invalid_sort_field(self, client, uploaded):
        response = client.get("/api/v1/files/public", params={"sort": "checksum,asc"})

        assert_error(response, 400, "error.validation.failed")

    def test_direction_without_field(self, client):
        response = client.get("/api/v1/files/public", params={"sort": "desc"})

        assert_error(response, 400, "error.validation.failed")

    @pytest.mark.parametrize("params", [{"page": -1}, {"size": 0}, {"size": 1001}])
    def test_invalid_paging(self, client, params):
        response = client.get("/api/v1/files/public", params=params)

        assert_error(response, 400, "error.validation.failed")


class TestRenameEndpoint:
    def test_rename(self, client, user1):
        created = upload(client, user1, filename="a.txt").json()

        response = client.put(
            f"/api/v1/files/{created['id']}/rename",
            json={"newFilename": "renamed", "userId": user1},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["filename"] == "renamed.txt"
        assert body["id"] == created["id"]
        assert parse_time(body["updatedAt"]) > parse_time(created["updatedAt"])

    @pytest.mark.parametrize("new_name", ["", "x" * 51])
    def test_invalid_name(self, client, user1, new_name):
        created = upload(client, user1).json()

        response = client.put(
            f"/api/v1/files/{created['id']}/rename",
            json={"newFilename": new_name, "userId": user1},
        )

        assert_error(response, 400, "error.validation.failed")

    def test_invalid_json(self, client, user1):
        response = client.put(
            f"/api/v1/files/{uuid.uuid4()}/rename",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert_error(response, 400, "error.invalid.json")

    def test_not_owner(self, client, user1, user2):
        created = upload(client, user1).json()

        response = client.put(
            f"/api/v1/files/{created['id']}/rename",
            json={"newFilename": "stolen", "userId": user2},
        )

        assert_error(response, 404, "error.file.not.found.or.access.denied")


class TestDeleteEndpoint:
    def test_delete_then_not_found(self, client, object_storage, user1):
        file_id = upload(client, user1).json()["id"]

        response = client.delete(f"/api/v1/files/{file_id}/users/{user1}")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert object_storage.objects == {}
        assert client.get(f"/api/v1/files/{file_id}/users/{user1}").status_code == 404
        assert client.delete(f"/api/v1/files/{file_id}/users/{user1}").status_code == 404

    def test_storage_failure(self, client, object_storage, user1):
        file_id = upload(client, user1).json()["id"]
        object_storage.failing.add("delete")

        response = client.delete(f"/api/v1/files/{file_id}/users/{user1}")

        assert_error(response, 500, "error.delete.from.storage")
        assert client.get(f"/api/v1/files/{file_id}/users/{user1}").status_code == 200


class TestTagEndpoint:
    def test_search(self, client, user1):
        upload(client, user1, tags=["Holiday,work,homework"])

        response = client.get("/api/v1/tags", params={"search": "WORK"})

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == ["homework", "work"]
        assert body["totalElements"] == 2

    def test_empty_registry(self, client):
        response = client.get("/api/v1/tags")

        assert response.json()["content"] == []
        assert response.json()["totalPages"] == 0


def test_unexpected_error_is_internal(test_db):
    failing_service = MagicMock()
    failing_service.list_public_files.side_effect = RuntimeError("boom")
    app.dependency_overrides[get_file_service] = lambda: failing_service
    try:
        response = TestClient(app, raise_server_exceptions=False).get("/api/v1/files/public")
    finally:
        app.dependency_overrides.clear()

    body = assert_error(response, 500, "error.internal.server")
    assert body["error"] == "InternalServerError"


@pytest.mark.parametrize("filename, expected", [
    ("report.txt", 'attachment; filename="report.txt"'),
    ('say "hi".txt', "attachment; filename=\"say 'hi'.txt\"; filename*=UTF-8''say%20%22hi%22.txt"),
    ("résumé.txt", "attachment; filename=\"r?sum?.txt\"; filename*=UTF-8''r%C3%A9sum%C3%A9.txt"),
])
def test_content_disposition(filename, expected):
    assert content_disposition(filename) == expected

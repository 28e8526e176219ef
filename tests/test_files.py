"""
Test file upload, download and management endpoints.
"""

from pathlib import Path

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import error_of
from config import get_settings
from domain.file.models import StoredFile
from services.storage_service import get_storage_provider

PDF_BYTES = b"%PDF-1.4 fake pdf body"


def upload(client, name="report.pdf", content=PDF_BYTES, mime="application/pdf", **form):
    return client.post("/api/files", files={"file": (name, content, mime)}, data=form)


def stored_path(record):
    return Path(get_settings().local_storage_path) / record["storedFilename"]


def test_upload_and_download(client, user):
    response = upload(client, description="  Quarterly numbers ")
    assert response.status_code == 201, response.text
    record = response.json()["file"]
    assert record["filename"] == "report.pdf"
    assert record["mimeType"] == "application/pdf"
    assert record["size"] == len(PDF_BYTES)
    assert record["description"] == "Quarterly numbers"
    assert record["storedFilename"].endswith("-report.pdf")
    assert stored_path(record).read_bytes() == PDF_BYTES

    download = client.get(f"/api/files/{record['id']}")
    assert download.status_code == 200
    assert download.content == PDF_BYTES
    assert download.headers["content-type"].startswith("application/pdf")
    assert download.headers["content-disposition"] == 'attachment; filename="report.pdf"'


def test_download_non_ascii_filename(client, user):
    record = upload(client, name="résumé.txt", content=b"cv", mime="text/plain").json()["file"]
    disposition = client.get(f"/api/files/{record['id']}").headers["content-disposition"]
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9.txt" in disposition


def test_rejects_disallowed_mime_type(client, user):
    response = upload(client, name="run.sh", content=b"echo hi", mime="application/x-sh")
    assert response.status_code == 400
    assert error_of(response)["message"] == "File type not allowed."
    assert client.get("/api/files").json()["files"] == []


def test_rejects_empty_file(client, user):
    response = upload(client, content=b"")
    assert response.status_code == 400
    assert error_of(response)["message"] == "Empty files are not allowed."


def test_rejects_oversized_file(client, user, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_upload_size_bytes", 8)
    response = upload(client, content=b"x" * 9, mime="text/plain")
    assert response.status_code == 413
    assert error_of(response)["code"] == "PAYLOAD_TOO_LARGE"
    assert client.get("/api/files").json()["files"] == []


def test_upload_requires_a_file(client, user):
    response = client.post("/api/files", data={"description": "nothing attached"})
    assert response.status_code == 400


def test_upload_into_foreign_project_is_rejected(client, user, other_client, other_user):
    foreign = other_client.post("/api/projects", json={"name": "Theirs"}).json()["project"]
    blobs_before = set(Path(get_settings().local_storage_path).iterdir())

    response = upload(client, projectId=foreign["id"])
    assert response.status_code == 400
    assert error_of(response)["message"] == "Project not found or access denied."
    assert set(Path(get_settings().local_storage_path).iterdir()) == blobs_before
    assert client.get("/api/files").json()["files"] == []


def test_failed_metadata_insert_removes_blob(client, user, monkeypatch):
    commit = AsyncSession.commit

    async def failing_commit(self):
        if any(isinstance(obj, StoredFile) for obj in self.new):
            raise IntegrityError("INSERT INTO files", {}, Exception("disk full"))
        return await commit(self)

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    blobs_before = set(Path(get_settings().local_storage_path).iterdir())

    response = upload(client)
    assert response.status_code == 500
    assert error_of(response)["message"] == "Failed to save file metadata."
    assert set(Path(get_settings().local_storage_path).iterdir()) == blobs_before

    monkeypatch.undo()
    assert client.get("/api/files").json()["files"] == []


def test_list_files_filters(client, user):
    project = client.post("/api/projects", json={"name": "P"}).json()["project"]
    upload(client, name="a.pdf", projectId=project["id"])
    upload(client, name="b.txt", content=b"b", mime="text/plain")

    in_project = client.get("/api/files", params={"projectId": project["id"]}).json()["files"]
    assert [f["filename"] for f in in_project] == ["a.pdf"]

    text_files = client.get("/api/files", params={"mimeType": "text/plain"}).json()["files"]
    assert [f["filename"] for f in text_files] == ["b.txt"]

    by_name = client.get("/api/files", params={"sortBy": "filename", "sortOrder": "asc"})
    assert [f["filename"] for f in by_name.json()["files"]] == ["a.pdf", "b.txt"]

    bad_mime = client.get("/api/files", params={"mimeType": "application/x-sh"})
    assert bad_mime.status_code == 400
    assert error_of(bad_mime)["message"] == "Invalid MIME type filter."


def test_update_file_metadata(client, user):
    project = client.post("/api/projects", json={"name": "P"}).json()["project"]
    record = upload(client).json()["file"]
    url = f"/api/files/{record['id']}"

    response = client.patch(url, json={"description": "Signed", "projectId": project["id"]})
    assert response.status_code == 200
    updated = response.json()["file"]
    assert updated["description"] == "Signed"
    assert updated["projectId"] == project["id"]

    detached = client.patch(url, json={"projectId": "none"}).json()["file"]
    assert detached["projectId"] is None

    assert client.patch(url, json={}).status_code == 400
    assert client.patch(url, json={"projectId": "bogus"}).status_code == 400


def test_delete_removes_blob(client, user):
    record = upload(client).json()["file"]
    path = stored_path(record)
    assert path.exists()

    response = client.delete(f"/api/files/{record['id']}")
    assert response.status_code == 200
    assert response.json()["message"] == "File deleted successfully."
    assert not path.exists()

    assert client.get(f"/api/files/{record['id']}").status_code == 404


def test_missing_blob_is_reported(client, user):
    record = upload(client).json()["file"]
    stored_path(record).unlink()

    response = client.get(f"/api/files/{record['id']}")
    assert response.status_code == 404
    assert error_of(response)["message"] == "File not found in cloud storage."


def test_foreign_file_is_not_found(client, user, other_client, other_user):
    record = upload(client).json()["file"]
    url = f"/api/files/{record['id']}"

    assert other_client.get(url).status_code == 404
    assert other_client.patch(url, json={"description": "x"}).status_code == 404
    assert other_client.delete(url).status_code == 404
    assert stored_path(record).exists()


def test_storage_health(client, user):
    response = client.get("/api/storage/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "bucket": get_storage_provider().bucket_name}


def test_storage_health_requires_authentication(client):
    assert client.get("/api/storage/health").status_code == 401

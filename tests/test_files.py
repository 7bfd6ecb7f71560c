"""
Integration tests: upload, download, quota enforcement and file management.
"""
import io
import os
from urllib.parse import quote

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from starlette.datastructures import Headers

from hostpanel.config import settings
from hostpanel.crud import crud_file, crud_user
from hostpanel.models.user import User
from hostpanel.schemas.user import UserRegister
from hostpanel.services import file_storage
from tests.conftest import register_user, upload

FILES_URL = "/api/files"


def _set_storage_quota(session_factory, email: str, quota: int) -> None:
    db = session_factory()
    try:
        user = db.query(User).filter(User.email == email).one()
        user.storage_quota = quota
        db.commit()
    finally:
        db.close()


def _files_on_disk(upload_dir) -> list:
    return [p for p in upload_dir.rglob("*") if p.is_file()]


@pytest.mark.asyncio
async def test_upload_stores_file_and_returns_urls(client: AsyncClient, user_headers: dict, upload_dir):
    r = await upload(client, user_headers, name="notes.txt", content=b"abc", is_public=True)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["message"] == "File uploaded successfully"
    f = body["file"]
    assert f["originalName"] == "notes.txt"
    assert f["fileSize"] == 3
    assert f["mimeType"] == "text/plain"
    assert f["isPublic"] is True
    assert f["storedName"].startswith("file-") and f["storedName"].endswith(".txt")
    assert f["downloadUrl"] == f"/api/files/download/{f['id']}"
    assert f["publicUrl"].endswith(f"/{f['storedName']}")

    stored = _files_on_disk(upload_dir)
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"abc"


@pytest.mark.asyncio
async def test_private_upload_has_no_public_url(client: AsyncClient, user_headers: dict):
    r = await upload(client, user_headers)
    assert r.status_code == 201
    assert r.json()["file"]["publicUrl"] is None


@pytest.mark.asyncio
async def test_disallowed_mime_type_rejected(client: AsyncClient, user_headers: dict, upload_dir):
    r = await upload(client, user_headers, name="tool.exe", content=b"MZ", mime="application/x-msdownload")
    assert r.status_code == 400
    assert r.json()["error"] == "File type not allowed"
    assert _files_on_disk(upload_dir) == []


@pytest.mark.asyncio
async def test_missing_file_rejected(client: AsyncClient, user_headers: dict):
    r = await client.post(f"{FILES_URL}/upload", data={"isPublic": "false"}, headers=user_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "No file uploaded"


@pytest.mark.asyncio
async def test_storage_quota_rejects_and_removes_bytes(
    client: AsyncClient, user_headers: dict, upload_dir, session_factory
):
    _set_storage_quota(session_factory, "owner@example.com", 10)

    ok = await upload(client, user_headers, content=b"123456")
    assert ok.status_code == 201

    r = await upload(client, user_headers, name="big.txt", content=b"12345")
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Storage quota exceeded"
    assert body["quota"] == 10
    assert body["used"] == 6
    assert body["requested"] == 5

    # Only the accepted file is left behind
    assert len(_files_on_disk(upload_dir)) == 1
    listing = (await client.get(FILES_URL, headers=user_headers)).json()
    assert listing["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_upload_exactly_filling_quota_is_accepted(
    client: AsyncClient, user_headers: dict, session_factory
):
    _set_storage_quota(session_factory, "owner@example.com", 10)
    r = await upload(client, user_headers, content=b"0123456789")
    assert r.status_code == 201

    stats = (await client.get(f"{FILES_URL}/stats/usage", headers=user_headers)).json()
    assert stats["storageUsed"] == 10
    assert stats["storageAvailable"] == 0
    assert stats["usagePercentage"] == 100


@pytest.mark.asyncio
async def test_failed_insert_removes_bytes(client: AsyncClient, user_headers: dict, upload_dir, monkeypatch):
    def _failing_create(db, **kwargs):
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(crud_file, "create", _failing_create)

    r = await upload(client, user_headers, content=b"abc")
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to upload file"
    assert _files_on_disk(upload_dir) == []


@pytest.mark.asyncio
async def test_oversized_upload_rejected(client: AsyncClient, user_headers: dict, upload_dir, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 4)

    r = await upload(client, user_headers, content=b"0123456789")
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "File too large"
    assert body["maxSize"] == 4
    assert _files_on_disk(upload_dir) == []

    listing = (await client.get(FILES_URL, headers=user_headers)).json()
    assert listing["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_unexpected_failure_after_write_removes_bytes(db, upload_dir, monkeypatch):
    user = crud_user.create(db, obj_in=UserRegister(email="crash@example.com", password="Secret123!"))

    def _crashing_create(db, **kwargs):
        raise RuntimeError("worker interrupted")

    monkeypatch.setattr(crud_file, "create", _crashing_create)
    incoming = UploadFile(
        file=io.BytesIO(b"partial"),
        filename="draft.txt",
        headers=Headers({"content-type": "text/plain"}),
    )

    with pytest.raises(RuntimeError):
        await file_storage.upload(db, user, incoming)
    assert _files_on_disk(upload_dir) == []


@pytest.mark.asyncio
async def test_owner_download_streams_bytes_and_counts(client: AsyncClient, user_headers: dict):
    f = (await upload(client, user_headers, name="report.txt", content=b"payload")).json()["file"]

    r = await client.get(f"{FILES_URL}/download/{f['id']}", headers=user_headers)
    assert r.status_code == 200
    assert r.content == b"payload"
    assert r.headers["content-type"].startswith("text/plain")
    assert r.headers["content-length"] == "7"
    assert r.headers["content-disposition"] == 'attachment; filename="report.txt"'

    await client.get(f"{FILES_URL}/download/{f['id']}", headers=user_headers)
    listing = (await client.get(FILES_URL, headers=user_headers)).json()
    assert listing["files"][0]["downloadCount"] == 2


@pytest.mark.asyncio
async def test_download_with_non_ascii_name(client: AsyncClient, user_headers: dict):
    name = "résumé-文件.txt"
    f = (await upload(client, user_headers, name=name, content=b"cv")).json()["file"]

    r = await client.get(f"{FILES_URL}/download/{f['id']}", headers=user_headers)
    assert r.status_code == 200
    assert r.content == b"cv"
    disposition = r.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="')
    assert f"filename*=UTF-8''{quote(f['originalName'], safe='')}" in disposition

    listing = (await client.get(FILES_URL, headers=user_headers)).json()
    assert listing["files"][0]["downloadCount"] == 1


@pytest.mark.asyncio
async def test_private_file_denied_to_other_user(client: AsyncClient, user_headers: dict):
    f = (await upload(client, user_headers)).json()["file"]
    other = await register_user(client, "other@example.com")

    r = await client.get(f"{FILES_URL}/download/{f['id']}", headers=other)
    assert r.status_code == 403
    assert r.json()["error"] == "Access denied"

    listing = (await client.get(FILES_URL, headers=user_headers)).json()
    assert listing["files"][0]["downloadCount"] == 0


@pytest.mark.asyncio
async def test_public_file_downloadable_by_other_user(client: AsyncClient, user_headers: dict):
    f = (await upload(client, user_headers, content=b"shared", is_public=True)).json()["file"]
    other = await register_user(client, "other@example.com")

    r = await client.get(f"{FILES_URL}/download/{f['id']}", headers=other)
    assert r.status_code == 200
    assert r.content == b"shared"

    static = await client.get(f["publicUrl"])
    assert static.status_code == 200
    assert static.content == b"shared"


@pytest.mark.asyncio
async def test_private_file_not_served_statically(client: AsyncClient, user_headers: dict, upload_dir):
    await upload(client, user_headers)
    stored = _files_on_disk(upload_dir)[0]
    user_id = stored.parent.name

    r = await client.get(f"/uploads/{user_id}/{stored.name}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_download_missing_on_disk(client: AsyncClient, user_headers: dict, upload_dir):
    f = (await upload(client, user_headers)).json()["file"]
    for path in _files_on_disk(upload_dir):
        os.remove(path)

    r = await client.get(f"{FILES_URL}/download/{f['id']}", headers=user_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "File not found on disk"


@pytest.mark.asyncio
async def test_update_file(client: AsyncClient, user_headers: dict):
    f = (await upload(client, user_headers)).json()["file"]

    r = await client.put(
        f"{FILES_URL}/{f['id']}",
        json={"isPublic": True, "originalName": "renamed.txt"},
        headers=user_headers,
    )
    assert r.status_code == 200
    updated = r.json()["file"]
    assert updated["isPublic"] is True
    assert updated["originalName"] == "renamed.txt"
    assert updated["storedName"] == f["storedName"]

    empty = await client.put(f"{FILES_URL}/{f['id']}", json={}, headers=user_headers)
    assert empty.status_code == 400
    assert empty.json()["error"] == "No fields to update"


@pytest.mark.asyncio
async def test_delete_file_removes_row_and_bytes(client: AsyncClient, user_headers: dict, upload_dir):
    f = (await upload(client, user_headers)).json()["file"]

    r = await client.delete(f"{FILES_URL}/{f['id']}", headers=user_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "File deleted successfully"
    assert _files_on_disk(upload_dir) == []

    again = await client.delete(f"{FILES_URL}/{f['id']}", headers=user_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_delete_succeeds_when_bytes_already_gone(client: AsyncClient, user_headers: dict, upload_dir):
    f = (await upload(client, user_headers)).json()["file"]
    for path in _files_on_disk(upload_dir):
        os.remove(path)

    r = await client.delete(f"{FILES_URL}/{f['id']}", headers=user_headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_list_files_paginates_and_searches(client: AsyncClient, user_headers: dict):
    for i in range(3):
        await upload(client, user_headers, name=f"report-{i}.txt")
    await upload(client, user_headers, name="photo.png", content=b"\x89PNG", mime="image/png")

    page = (await client.get(FILES_URL, params={"page": 2, "limit": 3}, headers=user_headers)).json()
    assert page["pagination"] == {"page": 2, "limit": 3, "total": 4, "pages": 2}
    assert len(page["files"]) == 1

    found = (await client.get(FILES_URL, params={"search": "REPORT"}, headers=user_headers)).json()
    assert found["pagination"]["total"] == 3
    assert all(f["originalName"].startswith("report-") for f in found["files"])


@pytest.mark.asyncio
async def test_usage_stats(client: AsyncClient, user_headers: dict):
    await upload(client, user_headers, content=b"aaaa", is_public=True)
    await upload(client, user_headers, content=b"bb")

    stats = (await client.get(f"{FILES_URL}/stats/usage", headers=user_headers)).json()
    assert stats["totalFiles"] == 2
    assert stats["totalSize"] == 6
    assert stats["publicFiles"] == 1
    assert stats["privateFiles"] == 1
    assert stats["storageQuota"] == 1073741824
    assert stats["usagePercentage"] == 0

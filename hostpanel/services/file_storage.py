"""
File Transfer Handler

Upload order: MIME allow-list → stream bytes to disk (size-capped) → quota
check → insert row. The bytes written to disk are removed whenever a later
step rejects the upload, so the store and the filesystem agree. Deleting a
row is never blocked by a failed disk removal; that failure is only logged.
"""
import logging
import math
import os
import random
import time
import unicodedata
from pathlib import Path
from typing import AsyncIterator, Dict, Optional, Tuple
from urllib.parse import quote
from uuid import UUID

import aiofiles
from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostpanel.config import settings
from hostpanel.crud import crud_file
from hostpanel.exceptions import (
    AccessDenied,
    InternalError,
    NotFound,
    ValidationError,
)
from hostpanel.models.file import File
from hostpanel.models.user import User
from hostpanel.schemas.file import FileUpdate
from hostpanel.services import quota

logger = logging.getLogger("hostpanel.files")

ALLOWED_MIME_TYPES = {
    "image/jpeg", "image/png", "image/gif", "image/webp",
    "text/plain", "text/html", "text/css", "text/javascript",
    "application/pdf", "application/json", "application/xml",
    "application/zip", "application/x-zip-compressed",
}


def normalize_mime(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def is_allowed_mime(content_type: Optional[str]) -> bool:
    mime = normalize_mime(content_type)
    return mime in ALLOWED_MIME_TYPES or mime.startswith("text/")


def user_upload_dir(user_id: UUID) -> Path:
    return Path(settings.UPLOAD_DIR).resolve() / str(user_id)


def generate_stored_name(original_name: str, field: str = "file") -> str:
    """``<field>-<epoch ms>-<random>.<ext>``, unique per request."""
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    ext = os.path.splitext(original_name or "")[1]
    return f"{field}-{suffix}{ext}"


def remove_quietly(path: str) -> bool:
    """Best-effort unlink; failures are logged, never raised."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.error("Failed to delete file from disk %s: %s", path, e)
        return False


async def save_upload(upload: UploadFile, dest_dir: Path, stored_name: str) -> Tuple[str, int]:
    """Stream ``upload`` into ``dest_dir/stored_name``. Returns (absolute path, size)."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    path = str(dest_dir / stored_name)
    size = 0
    try:
        async with aiofiles.open(path, "wb") as out:
            while True:
                chunk = await upload.read(settings.UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.MAX_FILE_SIZE:
                    raise ValidationError(
                        "File too large",
                        maxSize=settings.MAX_FILE_SIZE,
                    )
                await out.write(chunk)
    except BaseException:
        remove_quietly(path)
        raise
    return path, size


async def upload(db: Session, user: User, file: Optional[UploadFile], is_public: bool = False) -> File:
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    mime_type = normalize_mime(file.content_type)
    if not is_allowed_mime(mime_type):
        raise ValidationError("File type not allowed", mimeType=mime_type or None)

    stored_name = generate_stored_name(file.filename)
    path, size = await save_upload(file, user_upload_dir(user.id), stored_name)

    try:
        quota.check_storage(db, user.id, size)
        record = crud_file.create(
            db,
            user_id=user.id,
            original_name=file.filename,
            stored_name=stored_name,
            file_path=path,
            file_size=size,
            mime_type=mime_type,
            is_public=is_public,
        )
    except SQLAlchemyError as e:
        db.rollback()
        remove_quietly(path)
        logger.error("Upload insert failed for user %s: %s", user.id, e, extra={"stored_name": stored_name, "size": size})
        raise InternalError("Failed to upload file")
    except BaseException:
        # Quota rejection or anything else: the bytes must not outlive the row
        db.rollback()
        remove_quietly(path)
        raise

    logger.info(
        "File uploaded: %s (%d bytes) for user %s", stored_name, size, user.id,
        extra={"file_id": record.id, "stored_name": stored_name, "size": size},
    )
    return record


def file_urls(record: File) -> Dict[str, Optional[str]]:
    return {
        "download_url": f"{settings.API_PREFIX}/files/download/{record.id}",
        "public_url": f"/uploads/{record.user_id}/{record.stored_name}" if record.is_public else None,
    }


def prepare_download(db: Session, requester: User, file_id: UUID) -> Tuple[File, Dict[str, str]]:
    """
    Access checks and response headers, then bump download_count.

    Returns (record, headers). Nothing is counted when any step before the
    increment fails.
    """
    record = crud_file.get(db, file_id)
    if not record:
        raise NotFound("File not found")

    if record.user_id != requester.id and not record.is_public:
        raise AccessDenied("Access denied")

    # Store/filesystem divergence is surfaced, not repaired
    if not os.path.isfile(record.file_path):
        logger.warning(
            "File %s exists in store but not on disk: %s", record.id, record.file_path,
            extra={"file_id": record.id},
        )
        raise NotFound("File not found on disk")

    headers = download_headers(record)

    crud_file.increment_download_count(db, record.id)
    db.refresh(record)
    return record, headers


async def iter_file(path: str, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk


def content_disposition(filename: str) -> str:
    """
    ``attachment`` with an ASCII ``filename`` fallback and, for names outside
    ASCII, an RFC 5987 ``filename*`` carrying the UTF-8 original.
    """
    cleaned = filename.replace("\r", "").replace("\n", "")
    ascii_name = unicodedata.normalize("NFKD", cleaned).encode("ascii", "ignore").decode("ascii")
    ascii_name = ascii_name.replace('"', "").replace("\\", "").strip() or "download"
    if ascii_name == cleaned:
        return f'attachment; filename="{ascii_name}"'
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(cleaned, safe='')}"


def download_headers(record: File) -> Dict[str, str]:
    return {
        "Content-Disposition": content_disposition(record.original_name),
        "Content-Length": str(record.file_size),
    }


def get_owned(db: Session, user: User, file_id: UUID) -> File:
    record = crud_file.get_owned(db, file_id=file_id, user_id=user.id)
    if not record:
        raise NotFound("File not found")
    return record


def update(db: Session, user: User, file_id: UUID, patch: FileUpdate) -> File:
    if patch.is_public is None and patch.original_name is None:
        raise ValidationError("No fields to update")
    record = get_owned(db, user, file_id)
    return crud_file.update(db, db_obj=record, obj_in=patch)


def delete(db: Session, user: User, file_id: UUID) -> None:
    record = get_owned(db, user, file_id)
    # Disk first; a failure there must not keep the row alive
    stored_name = record.stored_name
    remove_quietly(record.file_path)
    crud_file.delete(db, db_obj=record)
    logger.info(
        "File deleted: %s for user %s", stored_name, user.id,
        extra={"file_id": file_id, "stored_name": stored_name},
    )


def list_files(db: Session, user: User, page: int = 1, limit: int = 20, search: str = "") -> Dict:
    files, total = crud_file.get_by_user(
        db, user.id, skip=(page - 1) * limit, limit=limit, search=search
    )
    return {
        "files": files,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }


def usage_stats(db: Session, user: User) -> Dict[str, int]:
    stats = crud_file.get_stats(db, user.id)
    storage = quota.usage_report(user.storage_quota, stats["total_size"])
    return {
        **stats,
        "storage_quota": storage["quota"],
        "storage_used": storage["used"],
        "storage_available": storage["available"],
        "usage_percentage": storage["percentage"],
    }

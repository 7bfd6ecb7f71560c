from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File as FileParam, Form, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from hostpanel.api import deps
from hostpanel.models.user import User
from hostpanel.schemas.file import (
    FileList,
    FileResult,
    FileUpdate,
    UploadResult,
    UploadedFile,
    UsageStats,
)
from hostpanel.services import file_storage

router = APIRouter()


@router.get("", response_model=FileList)
def list_files(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(""),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return file_storage.list_files(db, current_user, page=page, limit=limit, search=search)


@router.post("/upload", response_model=UploadResult, status_code=201)
async def upload_file(
    file: Optional[UploadFile] = FileParam(None),
    is_public: bool = Form(False, alias="isPublic"),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """
    Multipart upload (field ``file``). The bytes are rejected and removed if
    the MIME type is not allowed or the user's storage quota would be exceeded.
    """
    record = await file_storage.upload(db, current_user, file, is_public=is_public)
    return UploadResult(
        file=UploadedFile(
            id=record.id,
            original_name=record.original_name,
            stored_name=record.stored_name,
            file_size=record.file_size,
            mime_type=record.mime_type,
            is_public=record.is_public,
            created_at=record.created_at,
            **file_storage.file_urls(record),
        )
    )


@router.get("/download/{file_id}")
def download_file(
    file_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    record, headers = file_storage.prepare_download(db, current_user, file_id)
    return StreamingResponse(
        file_storage.iter_file(record.file_path),
        media_type=record.mime_type or "application/octet-stream",
        headers=headers,
    )


@router.put("/{file_id}", response_model=FileResult)
def update_file(
    file_id: UUID,
    body: FileUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    record = file_storage.update(db, current_user, file_id, body)
    return FileResult(message="File updated successfully", file=record)


@router.delete("/{file_id}")
def delete_file(
    file_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    file_storage.delete(db, current_user, file_id)
    return {"message": "File deleted successfully"}


@router.get("/stats/usage", response_model=UsageStats)
def usage_stats(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return file_storage.usage_stats(db, current_user)

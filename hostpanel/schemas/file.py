from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import Field

from hostpanel.schemas.base import CamelModel


# Patch structure: only these columns are updatable
class FileUpdate(CamelModel):
    is_public: Optional[bool] = None
    original_name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class File(CamelModel):
    id: UUID
    original_name: str
    stored_name: str
    file_size: int
    mime_type: Optional[str] = None
    is_public: bool = False
    download_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UploadedFile(CamelModel):
    id: UUID
    original_name: str
    stored_name: str
    file_size: int
    mime_type: Optional[str] = None
    is_public: bool
    download_url: str
    public_url: Optional[str] = None
    created_at: Optional[datetime] = None


class UploadResult(CamelModel):
    message: str = "File uploaded successfully"
    file: UploadedFile


class FileResult(CamelModel):
    message: str
    file: File


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class FileList(CamelModel):
    files: List[File]
    pagination: Pagination


class UsageStats(CamelModel):
    total_files: int
    total_size: int
    public_files: int
    private_files: int
    total_downloads: int
    storage_quota: int
    storage_used: int
    storage_available: int
    usage_percentage: int

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from hostpanel.models.file import File
from hostpanel.schemas.file import FileUpdate

# Columns the update endpoint may touch
UPDATABLE_FIELDS = ("is_public", "original_name")


def get(db: Session, file_id: UUID) -> Optional[File]:
    return db.query(File).filter(File.id == file_id).first()


def get_owned(db: Session, *, file_id: UUID, user_id: UUID) -> Optional[File]:
    return db.query(File).filter(File.id == file_id, File.user_id == user_id).first()


def get_public_by_stored_name(db: Session, *, user_id: UUID, stored_name: str) -> Optional[File]:
    return db.query(File).filter(
        File.user_id == user_id,
        File.stored_name == stored_name,
        File.is_public.is_(True),
    ).first()


def get_by_user(
    db: Session, user_id: UUID, *, skip: int = 0, limit: int = 20, search: str = ""
) -> Tuple[List[File], int]:
    q = db.query(File).filter(File.user_id == user_id)
    if search:
        q = q.filter(File.original_name.ilike(f"%{search}%"))
    total = q.count()
    files = q.order_by(File.created_at.desc()).offset(skip).limit(limit).all()
    return files, total


def storage_used(db: Session, user_id: UUID) -> int:
    return int(
        db.query(func.coalesce(func.sum(File.file_size), 0))
        .filter(File.user_id == user_id)
        .scalar() or 0
    )


def create(
    db: Session,
    *,
    user_id: UUID,
    original_name: str,
    stored_name: str,
    file_path: str,
    file_size: int,
    mime_type: Optional[str],
    is_public: bool,
) -> File:
    db_obj = File(
        user_id=user_id,
        original_name=original_name,
        stored_name=stored_name,
        file_path=file_path,
        file_size=file_size,
        mime_type=mime_type,
        is_public=is_public,
        download_count=0,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def increment_download_count(db: Session, file_id: UUID) -> None:
    db.query(File).filter(File.id == file_id).update(
        {File.download_count: File.download_count + 1},
        synchronize_session=False,
    )
    db.commit()


def update(db: Session, *, db_obj: File, obj_in: FileUpdate) -> File:
    update_data = obj_in.model_dump(exclude_unset=True)
    for field in UPDATABLE_FIELDS:
        if update_data.get(field) is not None:
            setattr(db_obj, field, update_data[field])
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def delete(db: Session, *, db_obj: File) -> None:
    db.delete(db_obj)
    db.commit()


def get_stats(db: Session, user_id: UUID) -> Dict[str, Any]:
    row = db.query(
        func.count(File.id).label("total_files"),
        func.coalesce(func.sum(File.file_size), 0).label("total_size"),
        func.coalesce(func.sum(case((File.is_public.is_(True), 1), else_=0)), 0).label("public_files"),
        func.coalesce(func.sum(File.download_count), 0).label("total_downloads"),
    ).filter(File.user_id == user_id).one()
    total_files = int(row.total_files or 0)
    public_files = int(row.public_files or 0)
    return {
        "total_files": total_files,
        "total_size": int(row.total_size or 0),
        "public_files": public_files,
        "private_files": total_files - public_files,
        "total_downloads": int(row.total_downloads or 0),
    }

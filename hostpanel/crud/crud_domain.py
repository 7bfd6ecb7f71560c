from typing import List, Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import Session

from hostpanel.models.domain import Domain
from hostpanel.schemas.domain import DomainUpdate

# Columns the update endpoint may touch
UPDATABLE_FIELDS = ("auto_renew",)


def get_owned(db: Session, *, domain_id: UUID, user_id: UUID) -> Optional[Domain]:
    return db.query(Domain).filter(
        Domain.id == domain_id,
        Domain.user_id == user_id,
    ).first()


def get_by_name(db: Session, domain_name: str) -> Optional[Domain]:
    return db.query(Domain).filter(Domain.domain_name == domain_name).first()


def get_by_user(db: Session, user_id: UUID) -> List[Domain]:
    return db.query(Domain).filter(
        Domain.user_id == user_id
    ).order_by(Domain.created_at.desc()).all()


def count_by_user(db: Session, user_id: UUID) -> int:
    return db.query(func.count(Domain.id)).filter(Domain.user_id == user_id).scalar() or 0


def update(db: Session, *, db_obj: Domain, obj_in: DomainUpdate) -> Domain:
    update_data = obj_in.model_dump(exclude_unset=True)
    for field in UPDATABLE_FIELDS:
        if update_data.get(field) is not None:
            setattr(db_obj, field, update_data[field])
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def delete(db: Session, *, db_obj: Domain) -> None:
    db.delete(db_obj)
    db.commit()

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session

from hostpanel.core.security import get_password_hash, verify_password
from hostpanel.models.user import PLAN_QUOTAS, User
from hostpanel.schemas.user import ProfileUpdate, UserRegister

# Columns the profile endpoint may touch, in a fixed order
PROFILE_FIELDS = ("first_name", "last_name", "email")


def get(db: Session, user_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def email_taken(db: Session, email: str, exclude_user_id: Optional[UUID] = None) -> bool:
    q = db.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return q.first() is not None


def create(db: Session, *, obj_in: UserRegister, plan: str = "free") -> User:
    defaults = PLAN_QUOTAS[plan]
    db_obj = User(
        email=obj_in.email.lower(),
        hashed_password=get_password_hash(obj_in.password),
        first_name=obj_in.first_name,
        last_name=obj_in.last_name,
        plan_type=plan,
        storage_quota=defaults["storage_quota"],
        domain_quota=defaults["domain_quota"],
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def authenticate(db: Session, *, email: str, password: str) -> Optional[User]:
    user = get_by_email(db, email.lower())
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def update_profile(db: Session, *, db_obj: User, obj_in: ProfileUpdate) -> User:
    update_data = obj_in.model_dump(exclude_unset=True)
    for field in PROFILE_FIELDS:
        if update_data.get(field) is not None:
            setattr(db_obj, field, update_data[field])
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def set_password(db: Session, *, db_obj: User, new_password: str) -> User:
    db_obj.hashed_password = get_password_hash(new_password)
    db.add(db_obj)
    db.commit()
    return db_obj


def apply_plan(db: Session, *, db_obj: User, plan: str) -> User:
    quotas = PLAN_QUOTAS[plan]
    db_obj.plan_type = plan
    db_obj.storage_quota = quotas["storage_quota"]
    db_obj.domain_quota = quotas["domain_quota"]
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def mark_login(db: Session, *, db_obj: User) -> None:
    db_obj.last_login = datetime.now(timezone.utc)
    db.add(db_obj)


def delete(db: Session, *, db_obj: User) -> None:
    # Owned domains, files, websites, analytics, sessions and api keys cascade
    db.delete(db_obj)
    db.commit()

"""
Quota Ledger

Storage used and domain count are always aggregated live from the store;
nothing is cached on the user row. Enforcement takes a row lock on the owning
user first, so the aggregate and the insert that follows run in one
transaction and same-user writes serialize (PostgreSQL ``SELECT ... FOR
UPDATE``; SQLite has no row locks and ignores the clause).
"""
import logging
import math
from typing import Dict
from uuid import UUID

from sqlalchemy.orm import Session

from hostpanel.crud import crud_domain, crud_file
from hostpanel.exceptions import NotFound, QuotaExceeded
from hostpanel.models.user import User

logger = logging.getLogger("hostpanel.quota")


def percentage(used: int, quota: int) -> int:
    """round(used / quota * 100), half-up; 0 when there is no quota."""
    if not quota:
        return 0
    return int(math.floor(used / quota * 100 + 0.5))


def usage_report(quota: int, used: int) -> Dict[str, int]:
    return {
        "quota": quota,
        "used": used,
        # may go negative if usage already exceeds the ceiling
        "available": quota - used,
        "percentage": percentage(used, quota),
    }


def lock_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).with_for_update().first()
    if not user:
        raise NotFound("User not found")
    return user


def check_storage(db: Session, user_id: UUID, incoming_size: int) -> None:
    """Raise QuotaExceeded if ``incoming_size`` more bytes would pass the storage quota."""
    user = lock_user(db, user_id)
    current = crud_file.storage_used(db, user_id)
    if current + incoming_size > user.storage_quota:
        logger.info(
            "Storage quota exceeded for user %s: %d + %d > %d",
            user_id, current, incoming_size, user.storage_quota,
        )
        raise QuotaExceeded(
            "Storage quota exceeded",
            quota=user.storage_quota,
            used=current,
            requested=incoming_size,
        )


def check_domains(db: Session, user_id: UUID) -> None:
    """Raise QuotaExceeded if the user already holds ``domain_quota`` domains."""
    user = lock_user(db, user_id)
    current = crud_domain.count_by_user(db, user_id)
    if current >= user.domain_quota:
        logger.info("Domain quota exceeded for user %s: %d/%d", user_id, current, user.domain_quota)
        raise QuotaExceeded("Domain quota exceeded", quota=user.domain_quota, used=current)


def domain_usage(db: Session, user: User) -> Dict[str, int]:
    used = crud_domain.count_by_user(db, user.id)
    return {
        "quota": user.domain_quota,
        "used": used,
        "available": user.domain_quota - used,
    }

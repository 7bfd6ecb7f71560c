from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from hostpanel.core.security import generate_api_key, hash_api_key
from hostpanel.models.api_key import ApiKey
from hostpanel.models.session import UserSession


# ═══════════════════════════════════════════
#  Login sessions
# ═══════════════════════════════════════════

def create_session(
    db: Session,
    *,
    user_id: UUID,
    session_token: str,
    expires_at: datetime,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> UserSession:
    db_obj = UserSession(
        user_id=user_id,
        session_token=session_token,
        expires_at=expires_at,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(db_obj)
    db.commit()
    return db_obj


# ═══════════════════════════════════════════
#  API keys
# ═══════════════════════════════════════════

def create_api_key(
    db: Session,
    *,
    user_id: UUID,
    name: str,
    permissions: Optional[dict] = None,
    expires_in_days: Optional[int] = None,
) -> tuple[ApiKey, str]:
    """Return (row, raw_key). Only the hash of the key is persisted."""
    raw_key = generate_api_key()
    expires_at = None
    if expires_in_days:
        expires_at = datetime.now(timezone.utc) + timedelta(days=expires_in_days)
    db_obj = ApiKey(
        user_id=user_id,
        name=name,
        key_hash=hash_api_key(raw_key),
        permissions=permissions or {},
        expires_at=expires_at,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj, raw_key


def get_api_keys(db: Session, user_id: UUID) -> List[ApiKey]:
    return db.query(ApiKey).filter(
        ApiKey.user_id == user_id
    ).order_by(ApiKey.created_at.desc()).all()


def get_active_api_key(db: Session, raw_key: str) -> Optional[ApiKey]:
    key = db.query(ApiKey).filter(
        ApiKey.key_hash == hash_api_key(raw_key),
        ApiKey.is_active.is_(True),
    ).first()
    if not key:
        return None
    if key.expires_at is not None:
        expires_at = key.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at <= datetime.now(timezone.utc):
            return None
    return key


def touch_api_key(db: Session, *, db_obj: ApiKey) -> None:
    db_obj.last_used = datetime.now(timezone.utc)
    db.add(db_obj)
    db.commit()


def revoke_api_key(db: Session, *, user_id: UUID, key_id: UUID) -> bool:
    key = db.query(ApiKey).filter(ApiKey.id == key_id, ApiKey.user_id == user_id).first()
    if not key:
        return False
    key.is_active = False
    db.commit()
    return True

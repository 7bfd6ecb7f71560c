"""
JWT, password and API-key helpers.

Usage:
    from hostpanel.core import security

    token, jti, expires = security.create_access_token(user.id)
    payload = security.decode_access_token(token)
"""
import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
from jose import JWTError, jwt

from hostpanel.config import settings

API_KEY_PREFIX = "hp_"


# ─────────────────────────────────────────────
# Passwords
# ─────────────────────────────────────────────
def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ─────────────────────────────────────────────
# JWT
# ─────────────────────────────────────────────
def create_access_token(
    subject: Any, expires_delta: Optional[timedelta] = None
) -> Tuple[str, str, datetime]:
    """Return (token, jti, expires_at). The jti doubles as the session token."""
    expires = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    jti = uuid.uuid4().hex
    to_encode = {"sub": str(subject), "jti": jti, "exp": expires}
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, jti, expires


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# ─────────────────────────────────────────────
# API keys
# ─────────────────────────────────────────────
def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()

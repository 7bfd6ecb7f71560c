"""
Shared FastAPI dependencies.

Authentication resolves to a ``User`` and is handed to endpoints as an
argument; endpoints that also need client details take a ``RequestContext``.
"""
import logging
from dataclasses import dataclass
from typing import Generator, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer
from sqlalchemy.orm import Session

from hostpanel.config import settings
from hostpanel.core import security
from hostpanel.crud import crud_session, crud_user
from hostpanel.db.session import SessionLocal
from hostpanel.exceptions import AuthenticationError
from hostpanel.logging_config import user_id_ctx
from hostpanel.models.user import User
from hostpanel.services.analytics import EventSource
from hostpanel.services.domain_verification import DomainVerifier, build_verifier

logger = logging.getLogger("hostpanel.auth")

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False
)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _user_from_token(db: Session, token: str) -> Optional[User]:
    payload = security.decode_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        return None
    return crud_user.get(db, user_id)


def _user_from_api_key(db: Session, raw_key: str) -> Optional[User]:
    key = crud_session.get_active_api_key(db, raw_key)
    if not key:
        return None
    crud_session.touch_api_key(db, db_obj=key)
    return crud_user.get(db, key.user_id)


def get_current_user(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(reusable_oauth2),
    api_key: Optional[str] = Depends(api_key_header),
) -> User:
    user = None
    if token:
        user = _user_from_token(db, token)
    elif api_key:
        user = _user_from_api_key(db, api_key)

    if not user:
        if token or api_key:
            logger.debug("Rejected %s credentials", "bearer" if token else "API key")
        raise AuthenticationError("Access token required" if not (token or api_key) else "Invalid or expired token")
    user_id_ctx.set(str(user.id))
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_active:
        raise AuthenticationError("Inactive user")
    return current_user


def get_event_source(request: Request) -> EventSource:
    return EventSource(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )


@dataclass
class RequestContext:
    user: User
    source: EventSource


def get_request_context(
    current_user: User = Depends(get_current_active_user),
    source: EventSource = Depends(get_event_source),
) -> RequestContext:
    return RequestContext(user=current_user, source=source)


def get_domain_verifier() -> DomainVerifier:
    return build_verifier()

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from hostpanel.api import deps
from hostpanel.core import security
from hostpanel.crud import crud_session, crud_user
from hostpanel.exceptions import AuthenticationError, Conflict
from hostpanel.models.user import User
from hostpanel.schemas.token import Token
from hostpanel.schemas.user import RegisterResult, User as UserSchema, UserRegister
from hostpanel.services.analytics import EventSource

router = APIRouter()


def _issue_token(db: Session, user: User, source: EventSource) -> str:
    token, jti, expires_at = security.create_access_token(user.id)
    crud_user.mark_login(db, db_obj=user)
    crud_session.create_session(
        db,
        user_id=user.id,
        session_token=jti,
        expires_at=expires_at,
        ip_address=source.ip_address,
        user_agent=source.user_agent,
    )
    return token


@router.post("/register", response_model=RegisterResult, status_code=201)
def register(
    *,
    db: Session = Depends(deps.get_db),
    user_in: UserRegister,
    source: EventSource = Depends(deps.get_event_source),
) -> Any:
    """
    Create an account on the free plan and return a first access token.
    """
    if crud_user.email_taken(db, user_in.email.lower()):
        raise Conflict("Email already in use")
    user = crud_user.create(db, obj_in=user_in)
    token = _issue_token(db, user, source)
    return RegisterResult(message="User registered successfully", user=user, token=token)


@router.post("/login", response_model=Token)
def login_access_token(
    db: Session = Depends(deps.get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
    source: EventSource = Depends(deps.get_event_source),
) -> Any:
    """
    OAuth2 compatible token login; ``username`` carries the email.
    """
    user = crud_user.authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Inactive user")
    return Token(access_token=_issue_token(db, user, source))


@router.get("/me", response_model=UserSchema)
def read_user_me(
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return current_user

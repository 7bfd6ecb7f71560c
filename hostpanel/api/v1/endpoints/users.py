"""
Account self-service: profile, password, usage rollup, plan upgrade,
API keys and account deletion.
"""
import logging
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hostpanel.api import deps
from hostpanel.core.security import verify_password
from hostpanel.crud import crud_session, crud_user
from hostpanel.exceptions import Conflict, NotFound, ValidationError
from hostpanel.models.user import User
from hostpanel.schemas.user import (
    AccountDelete,
    ApiKey,
    ApiKeyCreate,
    ApiKeyCreated,
    PasswordChange,
    PlanUpgrade,
    ProfileUpdate,
    UserResult,
    UserStats,
)
from hostpanel.services import account

router = APIRouter()
logger = logging.getLogger("hostpanel.users")


@router.put("/profile", response_model=UserResult)
def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")
    if "email" in changes and crud_user.email_taken(db, changes["email"], exclude_user_id=current_user.id):
        raise Conflict("Email already in use")
    user = crud_user.update_profile(db, db_obj=current_user, obj_in=body)
    return UserResult(message="Profile updated successfully", user=user)


@router.put("/password")
def change_password(
    body: PasswordChange,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    if not verify_password(body.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect")
    crud_user.set_password(db, db_obj=current_user, new_password=body.new_password)
    logger.info("Password changed for user %s", current_user.id)
    return {"message": "Password updated successfully"}


@router.get("/stats", response_model=UserStats)
def user_stats(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return account.get_stats(db, current_user)


@router.post("/upgrade", response_model=UserResult)
def upgrade_plan(
    body: PlanUpgrade,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    user = account.upgrade_plan(db, current_user, body.plan_type)
    return UserResult(message=f"Successfully upgraded to {body.plan_type} plan", user=user)


@router.delete("/account")
def delete_account(
    body: AccountDelete,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    if not verify_password(body.password, current_user.hashed_password):
        raise ValidationError("Password is incorrect")
    account.delete_account(db, current_user)
    return {"message": "Account deleted successfully"}


# ── API keys ──

@router.get("/api-keys", response_model=List[ApiKey])
def list_api_keys(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return crud_session.get_api_keys(db, current_user.id)


@router.post("/api-keys", response_model=ApiKeyCreated, status_code=201)
def create_api_key(
    body: ApiKeyCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    key, raw_key = crud_session.create_api_key(
        db,
        user_id=current_user.id,
        name=body.name,
        permissions=body.permissions,
        expires_in_days=body.expires_in_days,
    )
    return ApiKeyCreated(
        id=key.id,
        name=key.name,
        permissions=key.permissions,
        last_used=key.last_used,
        expires_at=key.expires_at,
        created_at=key.created_at,
        is_active=key.is_active,
        key=raw_key,
    )


@router.delete("/api-keys/{key_id}")
def revoke_api_key(
    key_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    if not crud_session.revoke_api_key(db, user_id=current_user.id, key_id=key_id):
        raise NotFound("API key not found")
    return {"message": "API key revoked successfully"}

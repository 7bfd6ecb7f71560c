from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID
from pydantic import EmailStr, Field, field_validator

from hostpanel.schemas.base import CamelModel


class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)


class User(CamelModel):
    id: UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    plan_type: Optional[str] = None
    storage_quota: Optional[int] = None
    domain_quota: Optional[int] = None
    created_at: Optional[datetime] = None


class RegisterResult(CamelModel):
    message: str
    user: User
    token: str


# Patch structure: only these columns are updatable through the profile endpoint
class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class PasswordChange(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


class PlanUpgrade(CamelModel):
    plan_type: Literal["pro", "enterprise"]


class AccountDelete(CamelModel):
    password: str = Field(min_length=1)
    confirmation: str

    @field_validator("confirmation")
    @classmethod
    def _must_be_delete(cls, v: str) -> str:
        if v != "DELETE":
            raise ValueError('Confirmation must be exactly "DELETE"')
        return v


class ApiKeyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    permissions: Optional[dict] = None
    expires_in_days: Optional[int] = Field(default=None, ge=1, le=3650)


class ApiKey(CamelModel):
    id: UUID
    name: str
    permissions: Optional[dict] = None
    last_used: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_active: bool = True


class ApiKeyCreated(ApiKey):
    # Raw key is only ever returned once
    key: str


class StorageUsage(CamelModel):
    quota: int
    used: int
    available: int
    percentage: int


class DomainUsage(CamelModel):
    quota: int
    used: int
    available: int


class ResourceCounts(CamelModel):
    websites: int
    files: int
    total_downloads: int


class PlanInfo(CamelModel):
    type: str
    member_since: Optional[datetime] = None


class Activity(CamelModel):
    activity_type: str
    activity_description: str
    activity_date: Optional[datetime] = None


class UserStats(CamelModel):
    storage: StorageUsage
    domains: DomainUsage
    resources: ResourceCounts
    plan: PlanInfo
    recent_activity: List[Activity]


class UserResult(CamelModel):
    message: str
    user: User

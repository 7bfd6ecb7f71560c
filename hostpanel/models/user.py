import uuid
from sqlalchemy import Column, String, Boolean, DateTime, BigInteger, Integer, Uuid, func
from sqlalchemy.orm import relationship
import enum
from hostpanel.db.base_class import Base


class PlanType(str, enum.Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


# storage_quota in bytes, domain_quota in count
PLAN_QUOTAS = {
    PlanType.FREE.value: {"storage_quota": 1073741824, "domain_quota": 2},          # 1GB
    PlanType.PRO.value: {"storage_quota": 10737418240, "domain_quota": 10},         # 10GB
    PlanType.ENTERPRISE.value: {"storage_quota": 107374182400, "domain_quota": 100},  # 100GB
}


class User(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    plan_type = Column(String(50), default=PlanType.FREE.value)
    storage_quota = Column(BigInteger, default=PLAN_QUOTAS["free"]["storage_quota"])
    domain_quota = Column(Integer, default=PLAN_QUOTAS["free"]["domain_quota"])

    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships (owned rows go away with the user)
    domains = relationship("Domain", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    files = relationship("File", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    websites = relationship("Website", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    analytics_events = relationship("AnalyticsEvent", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    api_keys = relationship("ApiKey", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

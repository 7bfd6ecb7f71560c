"""
Custom Domain Model

Tracks per-user custom domains with their DNS-record descriptor and
verification / SSL status.
"""
import enum
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from hostpanel.db.base_class import Base
from hostpanel.db.types import JSONBlob


class DomainStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"
    EXPIRED = "expired"


class SSLStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"


class Domain(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Unique store-wide, not per user
    domain_name = Column(String(255), unique=True, nullable=False, index=True)

    status = Column(String(50), default=DomainStatus.PENDING.value)
    ssl_status = Column(String(50), default=SSLStatus.PENDING.value)
    dns_records = Column(JSONBlob, nullable=True)
    verification_token = Column(String(255), unique=True)

    expires_at = Column(DateTime(timezone=True), nullable=True)
    auto_renew = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_verified = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="domains")
    websites = relationship("Website", back_populates="domain", passive_deletes=True)
    analytics_events = relationship("AnalyticsEvent", back_populates="domain", cascade="all, delete-orphan", passive_deletes=True)

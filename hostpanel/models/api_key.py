import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from hostpanel.db.base_class import Base
from hostpanel.db.types import JSONBlob


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    key_hash = Column(String(255), nullable=False, index=True)  # sha256 of the raw key
    permissions = Column(JSONBlob, nullable=True)  # e.g. {"domains": ["read", "write"], "files": ["read"]}
    last_used = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    is_active = Column(Boolean, default=True)

    user = relationship("User", back_populates="api_keys")

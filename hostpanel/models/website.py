import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from hostpanel.db.base_class import Base
from hostpanel.db.types import JSONBlob


class Website(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    domain_id = Column(Uuid, ForeignKey("domains.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    site_type = Column(String(50), default="static")  # static, dynamic, nodejs, python
    root_directory = Column(String(255), nullable=False)
    index_file = Column(String(255), default="index.html")
    status = Column(String(50), default="building")  # building, active, error, stopped
    build_command = Column(Text, nullable=True)
    start_command = Column(Text, nullable=True)
    env_vars = Column(JSONBlob, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_deployed = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="websites")
    domain = relationship("Domain", back_populates="websites")
    analytics_events = relationship("AnalyticsEvent", back_populates="website", cascade="all, delete-orphan", passive_deletes=True)

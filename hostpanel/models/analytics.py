import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from hostpanel.db.base_class import Base
from hostpanel.db.types import IPAddress, JSONBlob


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsEvent(Base):
    __tablename__ = "analytics"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=True, index=True)
    domain_id = Column(Uuid, ForeignKey("domains.id", ondelete="CASCADE"), nullable=True, index=True)

    event_type = Column(String(100), nullable=False, index=True)  # page_view, file_download, error
    event_data = Column(JSONBlob, default=dict)
    ip_address = Column(IPAddress, nullable=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="analytics_events")
    website = relationship("Website", back_populates="analytics_events")
    domain = relationship("Domain", back_populates="analytics_events")

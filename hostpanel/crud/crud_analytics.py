from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from hostpanel.models.analytics import AnalyticsEvent


def create(
    db: Session,
    *,
    user_id: UUID,
    event_type: str,
    event_data: Optional[Any] = None,
    website_id: Optional[UUID] = None,
    domain_id: Optional[UUID] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    referrer: Optional[str] = None,
) -> AnalyticsEvent:
    db_obj = AnalyticsEvent(
        user_id=user_id,
        website_id=website_id,
        domain_id=domain_id,
        event_type=event_type,
        event_data=event_data if event_data is not None else {},
        ip_address=ip_address,
        user_agent=user_agent,
        referrer=referrer,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_since(
    db: Session,
    *,
    since: datetime,
    user_id: Optional[UUID] = None,
    domain_id: Optional[UUID] = None,
) -> List[AnalyticsEvent]:
    q = db.query(AnalyticsEvent).filter(AnalyticsEvent.created_at >= since)
    if user_id is not None:
        q = q.filter(AnalyticsEvent.user_id == user_id)
    if domain_id is not None:
        q = q.filter(AnalyticsEvent.domain_id == domain_id)
    return q.order_by(AnalyticsEvent.created_at.asc()).all()

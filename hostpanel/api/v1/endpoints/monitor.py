"""
Monitoring & analytics API

  GET  /health                 process + database snapshot (authenticated)
  GET  /analytics?period=      per-user report over 24h / 7d / 30d
  GET  /domains/{id}/stats     per-domain traffic and error rates
  POST /analytics/log          record one event
"""
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from hostpanel.api import deps
from hostpanel.models.user import User
from hostpanel.schemas.analytics import AnalyticsLog, AnalyticsReport, DomainStats
from hostpanel.services import analytics, domain_verification, health

router = APIRouter()


@router.get("/health")
def system_health(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    status_code, body = health.report(db)
    return JSONResponse(status_code=status_code, content=body)


@router.get("/analytics", response_model=AnalyticsReport)
def analytics_report(
    period: Optional[str] = Query(analytics.DEFAULT_PERIOD),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return analytics.build_report(db, current_user, period)


@router.get("/domains/{domain_id}/stats", response_model=DomainStats)
def domain_stats(
    domain_id: UUID,
    period: Optional[str] = Query(analytics.DEFAULT_PERIOD),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    domain = domain_verification.get_owned(db, current_user, domain_id)
    return analytics.domain_stats(db, domain, period)


@router.post("/analytics/log")
def log_event(
    body: AnalyticsLog,
    db: Session = Depends(deps.get_db),
    ctx: deps.RequestContext = Depends(deps.get_request_context),
) -> Any:
    analytics.log_event(db, ctx.user, body, ctx.source)
    return {"message": "Analytics event logged successfully"}

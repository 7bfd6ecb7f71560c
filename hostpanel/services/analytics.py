"""
Analytics Aggregator

Events are write-only rows; every report is built from the rows inside the
requested window and bucketed here (per day, per hour, per page, per traffic
source) so the same code runs on PostgreSQL and SQLite.
"""
import logging
from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse
from uuid import UUID

from sqlalchemy.orm import Session

from hostpanel.crud import crud_analytics
from hostpanel.exceptions import ValidationError
from hostpanel.models.analytics import AnalyticsEvent
from hostpanel.models.domain import Domain
from hostpanel.models.user import User
from hostpanel.models.website import Website
from hostpanel.schemas.analytics import AnalyticsLog
from hostpanel.services import quota

logger = logging.getLogger("hostpanel.analytics")

PAGE_VIEW = "page_view"
FILE_DOWNLOAD = "file_download"
ERROR = "error"

PERIODS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_PERIOD = "7d"
TOP_PAGES_LIMIT = 10

# Checked in order against the referrer host
_SOURCES = (
    ("google", "Google"),
    ("facebook", "Facebook"),
    ("twitter", "Twitter"),
    ("linkedin", "LinkedIn"),
)


@dataclass
class EventSource:
    """Client details captured from the incoming request."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


def resolve_period(period: Optional[str], now: Optional[datetime] = None) -> Tuple[str, datetime]:
    """Unknown periods fall back to 7d."""
    label = period if period in PERIODS else DEFAULT_PERIOD
    now = now or datetime.now(timezone.utc)
    return label, now - PERIODS[label]


def classify_referrer(referrer: Optional[str]) -> str:
    if not referrer:
        return "Direct"
    host = (urlparse(referrer).netloc or referrer).lower()
    for needle, label in _SOURCES:
        if needle in host:
            return label
    return "Other"


def error_percentage(errors: int, total: int) -> int:
    return quota.percentage(errors, total)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _day(dt: datetime) -> str:
    return _as_utc(dt).strftime("%Y-%m-%d")


def _hour(dt: datetime) -> str:
    return _as_utc(dt).strftime("%Y-%m-%dT%H:00:00Z")


def _page(event: AnalyticsEvent) -> Optional[str]:
    data = event.event_data or {}
    page = data.get("page") if isinstance(data, dict) else None
    return str(page) if page is not None else None


# ═══════════════════════════════════════════
#  Bucketing helpers
# ═══════════════════════════════════════════

def daily_counts(events: Iterable[AnalyticsEvent], event_type: str) -> List[Dict[str, Any]]:
    buckets: "OrderedDict[str, int]" = OrderedDict()
    for e in events:
        if e.event_type == event_type:
            key = _day(e.created_at)
            buckets[key] = buckets.get(key, 0) + 1
    return [{"date": d, "count": c} for d, c in sorted(buckets.items())]


def hourly_traffic(events: Iterable[AnalyticsEvent]) -> List[Dict[str, Any]]:
    buckets = Counter(_hour(e.created_at) for e in events)
    return [{"hour": h, "requests": c} for h, c in sorted(buckets.items())]


def top_pages(events: Iterable[AnalyticsEvent], limit: int = TOP_PAGES_LIMIT) -> List[Dict[str, Any]]:
    counts = Counter(
        page for page in (_page(e) for e in events if e.event_type == PAGE_VIEW) if page is not None
    )
    # Ties broken by page name so output is stable
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
    return [{"page": p, "views": v} for p, v in ranked]


def traffic_sources(events: Iterable[AnalyticsEvent]) -> List[Dict[str, Any]]:
    counts = Counter(classify_referrer(e.referrer) for e in events)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"source": s, "visits": v} for s, v in ranked]


def error_rates(events: Iterable[AnalyticsEvent]) -> List[Dict[str, Any]]:
    totals: Counter = Counter()
    errors: Counter = Counter()
    for e in events:
        day = _day(e.created_at)
        totals[day] += 1
        if e.event_type == ERROR:
            errors[day] += 1
    return [
        {
            "date": day,
            "total_requests": totals[day],
            "errors": errors[day],
            "error_percentage": error_percentage(errors[day], totals[day]),
        }
        for day in sorted(totals)
    ]


# ═══════════════════════════════════════════
#  Operations
# ═══════════════════════════════════════════

def _owned_id(db: Session, model, obj_id: Optional[UUID], user_id: UUID) -> Optional[UUID]:
    if obj_id is None:
        return None
    exists = db.query(model.id).filter(model.id == obj_id, model.user_id == user_id).first()
    if not exists:
        logger.debug("Dropping foreign %s reference %s from analytics event", model.__name__, obj_id)
        return None
    return obj_id


def log_event(db: Session, user: User, payload: AnalyticsLog, source: EventSource) -> AnalyticsEvent:
    if not payload.event_type:
        raise ValidationError("Event type is required")

    return crud_analytics.create(
        db,
        user_id=user.id,
        event_type=payload.event_type,
        event_data=payload.event_data if payload.event_data is not None else {},
        website_id=_owned_id(db, Website, payload.website_id, user.id),
        domain_id=_owned_id(db, Domain, payload.domain_id, user.id),
        ip_address=source.ip_address,
        user_agent=source.user_agent,
        referrer=source.referrer,
    )


def build_report(db: Session, user: User, period: Optional[str] = None) -> Dict[str, Any]:
    label, since = resolve_period(period)
    events = crud_analytics.get_since(db, since=since, user_id=user.id)

    page_views = daily_counts(events, PAGE_VIEW)
    downloads = daily_counts(events, FILE_DOWNLOAD)
    errors = daily_counts(events, ERROR)

    by_domain: Dict[str, List[AnalyticsEvent]] = {}
    for e in events:
        if e.domain_id is not None:
            by_domain.setdefault(str(e.domain_id), []).append(e)

    return {
        "period": label,
        "page_views": page_views,
        "downloads": downloads,
        "errors": errors,
        "top_pages": top_pages(events),
        "traffic_sources": traffic_sources(events),
        "domain_traffic": [
            {
                "domain_id": domain_id,
                "traffic": hourly_traffic(domain_events),
                "error_rates": error_rates(domain_events),
            }
            for domain_id, domain_events in sorted(by_domain.items())
        ],
        "summary": {
            "total_page_views": sum(row["count"] for row in page_views),
            "total_downloads": sum(row["count"] for row in downloads),
            "total_errors": sum(row["count"] for row in errors),
        },
    }


def domain_stats(db: Session, domain: Domain, period: Optional[str] = None) -> Dict[str, Any]:
    label, since = resolve_period(period)
    events = crud_analytics.get_since(db, since=since, domain_id=domain.id)
    traffic = hourly_traffic(events)
    rates = error_rates(events)
    return {
        "domain": {"id": domain.id, "domain_name": domain.domain_name},
        "period": label,
        "traffic": traffic,
        "top_pages": top_pages(events),
        "error_rates": rates,
        "summary": {
            "total_requests": sum(row["requests"] for row in traffic),
            "total_errors": sum(row["errors"] for row in rates),
        },
    }

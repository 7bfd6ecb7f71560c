from typing import Any, List, Optional
from uuid import UUID

from hostpanel.schemas.base import CamelModel


class AnalyticsLog(CamelModel):
    event_type: Optional[str] = None
    # Freeform JSON; reports only read "page" when it is an object
    event_data: Optional[Any] = None
    website_id: Optional[UUID] = None
    domain_id: Optional[UUID] = None


class DailyCount(CamelModel):
    date: str
    count: int


class HourlyCount(CamelModel):
    hour: str
    requests: int


class PageViews(CamelModel):
    page: str
    views: int


class TrafficSource(CamelModel):
    source: str
    visits: int


class ErrorRate(CamelModel):
    date: str
    total_requests: int
    errors: int
    error_percentage: int


class DomainTraffic(CamelModel):
    domain_id: str
    traffic: List[HourlyCount]
    error_rates: List[ErrorRate]


class AnalyticsSummary(CamelModel):
    total_page_views: int
    total_downloads: int
    total_errors: int


class AnalyticsReport(CamelModel):
    period: str
    page_views: List[DailyCount]
    downloads: List[DailyCount]
    errors: List[DailyCount]
    top_pages: List[PageViews]
    traffic_sources: List[TrafficSource]
    domain_traffic: List[DomainTraffic]
    summary: AnalyticsSummary


class DomainRef(CamelModel):
    id: UUID
    domain_name: str


class DomainStatsSummary(CamelModel):
    total_requests: int
    total_errors: int


class DomainStats(CamelModel):
    domain: DomainRef
    period: str
    traffic: List[HourlyCount]
    top_pages: List[PageViews]
    error_rates: List[ErrorRate]
    summary: DomainStatsSummary

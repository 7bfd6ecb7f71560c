"""
Integration tests: analytics event logging and reports.
"""
import pytest
from httpx import AsyncClient

from tests.conftest import add_domain, register_user

LOG_URL = "/api/monitor/analytics/log"


async def _log(client: AsyncClient, headers: dict, event_type: str, **extra) -> None:
    r = await client.post(LOG_URL, json={"eventType": event_type, **extra}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json() == {"message": "Analytics event logged successfully"}


@pytest.mark.asyncio
async def test_report_totals_and_error_rate(client: AsyncClient, user_headers: dict):
    domain = await add_domain(client, user_headers, "traffic.example.com")
    for page in ("/", "/", "/pricing"):
        await _log(client, user_headers, "page_view", domainId=domain["id"], eventData={"page": page})
    await _log(client, user_headers, "error", domainId=domain["id"])

    r = await client.get("/api/monitor/analytics", params={"period": "24h"}, headers=user_headers)
    assert r.status_code == 200
    report = r.json()
    assert report["period"] == "24h"
    assert report["summary"] == {"totalPageViews": 3, "totalDownloads": 0, "totalErrors": 1}
    assert report["topPages"] == [{"page": "/", "views": 2}, {"page": "/pricing", "views": 1}]
    assert report["trafficSources"] == [{"source": "Direct", "visits": 4}]

    [traffic] = report["domainTraffic"]
    assert traffic["domainId"] == domain["id"]
    rates = traffic["errorRates"]
    assert sum(r["totalRequests"] for r in rates) == 4
    assert sum(r["errors"] for r in rates) == 1
    if len(rates) == 1:
        assert rates[0]["errorPercentage"] == 25

    stats = (await client.get(f"/api/monitor/domains/{domain['id']}/stats", headers=user_headers)).json()
    assert stats["domain"]["domainName"] == "traffic.example.com"
    assert stats["period"] == "7d"
    assert stats["summary"] == {"totalRequests": 4, "totalErrors": 1}


@pytest.mark.asyncio
async def test_referrer_classified(client: AsyncClient, user_headers: dict):
    await client.post(
        LOG_URL,
        json={"eventType": "page_view"},
        headers={**user_headers, "Referer": "https://www.google.com/search?q=x"},
    )
    report = (await client.get("/api/monitor/analytics", headers=user_headers)).json()
    assert report["trafficSources"] == [{"source": "Google", "visits": 1}]


@pytest.mark.asyncio
async def test_event_type_required(client: AsyncClient, user_headers: dict):
    r = await client.post(LOG_URL, json={"eventData": {"page": "/"}}, headers=user_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Event type is required"


@pytest.mark.asyncio
async def test_event_data_accepts_any_json(client: AsyncClient, user_headers: dict):
    await _log(client, user_headers, "page_view", eventData=[1, 2])
    await _log(client, user_headers, "page_view", eventData="/landing")
    await _log(client, user_headers, "page_view", eventData={"page": "/docs"})

    report = (await client.get("/api/monitor/analytics", headers=user_headers)).json()
    assert report["summary"]["totalPageViews"] == 3
    assert report["topPages"] == [{"page": "/docs", "views": 1}]


@pytest.mark.asyncio
async def test_unknown_period_falls_back_to_week(client: AsyncClient, user_headers: dict):
    report = (await client.get("/api/monitor/analytics", params={"period": "1y"}, headers=user_headers)).json()
    assert report["period"] == "7d"
    assert report["summary"] == {"totalPageViews": 0, "totalDownloads": 0, "totalErrors": 0}


@pytest.mark.asyncio
async def test_reports_are_scoped_to_owner(client: AsyncClient, user_headers: dict):
    domain = await add_domain(client, user_headers, "mine.example.com")
    other = await register_user(client, "other@example.com")

    # A foreign domain id is dropped, the event itself is kept for the logger
    await _log(client, other, "page_view", domainId=domain["id"], eventData={"page": "/x"})

    mine = (await client.get("/api/monitor/analytics", headers=user_headers)).json()
    assert mine["summary"]["totalPageViews"] == 0
    theirs = (await client.get("/api/monitor/analytics", headers=other)).json()
    assert theirs["summary"]["totalPageViews"] == 1
    assert theirs["domainTraffic"] == []

    r = await client.get(f"/api/monitor/domains/{domain['id']}/stats", headers=other)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_monitor_health(client: AsyncClient, user_headers: dict):
    r = await client.get("/api/monitor/health", headers=user_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["database"]["status"] == "connected"
    assert "rss" in body["memory"]


@pytest.mark.asyncio
async def test_public_health_and_metrics(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"

    m = await client.get("/metrics")
    assert m.status_code == 200
    assert "hostpanel_http_requests_total" in m.text

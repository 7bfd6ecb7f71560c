"""
Prometheus Metrics Middleware

Exposes:
  - hostpanel_http_requests_total           (counter)
  - hostpanel_http_request_duration_seconds (histogram)
  - hostpanel_http_requests_in_progress     (gauge)
  - hostpanel_app                           (info)
"""

import re
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_COUNT = Counter(
    "hostpanel_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_DURATION = Histogram(
    "hostpanel_http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
REQUESTS_IN_PROGRESS = Gauge(
    "hostpanel_http_requests_in_progress",
    "Number of in-progress requests",
    ["method"],
)
APP_INFO = Info("hostpanel_app", "Application metadata")

_UUID = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")
_NUMERIC = re.compile(r"/\d+")
_STORED_NAME = re.compile(r"/file-\d+-\d+[^/]*")


def normalize_path(path: str) -> str:
    """Collapse ids and stored file names so label cardinality stays bounded."""
    path = _UUID.sub("{id}", path)
    path = _STORED_NAME.sub("/{file}", path)
    return _NUMERIC.sub("/{id}", path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method
        path = normalize_path(request.url.path)

        if path == "/metrics":
            return await call_next(request)

        REQUESTS_IN_PROGRESS.labels(method=method).inc()
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            REQUEST_COUNT.labels(method=method, endpoint=path, status="500").inc()
            REQUEST_DURATION.labels(method=method, endpoint=path).observe(
                time.perf_counter() - start
            )
            REQUESTS_IN_PROGRESS.labels(method=method).dec()
            raise

        elapsed = time.perf_counter() - start
        REQUEST_COUNT.labels(method=method, endpoint=path, status=str(response.status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=path).observe(elapsed)
        REQUESTS_IN_PROGRESS.labels(method=method).dec()

        return response


def metrics_endpoint(request: Request) -> Response:
    """Expose /metrics for Prometheus scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def set_app_info(version: str, env: str) -> None:
    APP_INFO.info({"version": version, "environment": env})

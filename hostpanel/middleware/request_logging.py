"""
Request Logging Middleware

- Assigns a request_id to every request (echoed as X-Request-ID)
- Sets the user_id log context from the bearer token, when there is one
- Logs request start and end with timing
"""

import logging
import time

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from hostpanel.config import settings
from hostpanel.logging_config import (
    generate_request_id,
    request_id_ctx,
    user_id_ctx,
)

logger = logging.getLogger("hostpanel.request")


def _extract_user_id(request: Request) -> str:
    # Route dependencies authenticate properly; this only labels log lines
    auth = request.headers.get("authorization", "")
    if not auth.startswith("Bearer "):
        return "-"
    try:
        payload = jwt.decode(
            auth[7:], settings.SECRET_KEY, algorithms=[settings.ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        return "-"
    return str(payload.get("sub", "-"))


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        rid = request.headers.get("x-request-id") or generate_request_id()
        request_id_ctx.set(rid)
        user_id_ctx.set(_extract_user_id(request))

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "-"

        logger.info("→ %s %s from %s", method, path, client_ip)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception("✗ %s %s %.1fms (unhandled exception)", method, path, elapsed)
            raise

        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = rid

        logger.info(
            "← %s %s %d %.1fms",
            method, path, response.status_code, elapsed,
            extra={"status_code": response.status_code, "duration_ms": round(elapsed, 1)},
        )
        return response

"""
Error taxonomy and FastAPI exception handlers.

Every user-visible failure is rendered as a JSON body with an ``error`` field,
optionally with an ``errors`` list for multi-field validation problems.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from hostpanel.config import settings

logger = logging.getLogger("hostpanel.errors")


class HostingError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, error: Optional[str] = None, **extra: Any):
        self.error = error or self.default_message
        self.extra = extra
        super().__init__(self.error)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.error, **self.extra}


class ValidationError(HostingError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, error: Optional[str] = None, errors: Optional[List[dict]] = None, **extra: Any):
        if errors:
            extra["errors"] = errors
        super().__init__(error, **extra)


class AuthenticationError(HostingError):
    status_code = 401
    default_message = "Could not validate credentials"


class AccessDenied(HostingError):
    status_code = 403
    default_message = "Access denied"


class NotFound(HostingError):
    status_code = 404
    default_message = "Not found"


class QuotaExceeded(HostingError):
    status_code = 400
    default_message = "Quota exceeded"


class DuplicateDomain(HostingError):
    status_code = 400
    default_message = "Domain already exists"


class Conflict(HostingError):
    status_code = 400
    default_message = "Email already in use"


class InternalError(HostingError):
    status_code = 500


# ═══════════════════════════════════════════
#  Handlers
# ═══════════════════════════════════════════

async def hosting_error_handler(request: Request, exc: HostingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.error)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        message = err.get("msg", "Invalid value").removeprefix("Value error, ")
        errors.append({"field": ".".join(loc) or None, "message": message})
    return JSONResponse(status_code=400, content={"error": "Validation failed", "errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Internal server error" if settings.is_production else str(exc) or "Internal server error"
    return JSONResponse(status_code=500, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HostingError, hosting_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

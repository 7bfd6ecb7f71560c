import logging
import os
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session

from hostpanel.api import deps
from hostpanel.api.v1.api import api_router
from hostpanel.config import settings
from hostpanel.crud import crud_file
from hostpanel.exceptions import NotFound, register_exception_handlers
from hostpanel.logging_config import setup_logging
from hostpanel.middleware.metrics import PrometheusMiddleware, metrics_endpoint, set_app_info
from hostpanel.middleware.rate_limit import RateLimitMiddleware
from hostpanel.middleware.request_logging import RequestLoggingMiddleware
from hostpanel.services import health

# ── Initialize structured logging ──
setup_logging()
logger = logging.getLogger("hostpanel")


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    logger.info("%s %s starting (%s)", settings.APP_NAME, settings.APP_VERSION, settings.APP_ENV)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

cors_origins = ["http://localhost:3000", "http://localhost:5173"]
if settings.BACKEND_CORS_ORIGINS:
    cors_origins.extend(
        [origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request ID, timing and user context on every log line
app.add_middleware(RequestLoggingMiddleware)

# Request count, latency, in-progress
app.add_middleware(PrometheusMiddleware)

if settings.RATE_LIMIT_ENABLED and not settings.is_development:
    app.add_middleware(RateLimitMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health")
def health_check(db: Session = Depends(deps.get_db)):
    status_code, body = health.report(db)
    return JSONResponse(status_code=status_code, content=body)


@app.get("/uploads/{user_id}/{stored_name}")
def public_file(user_id: UUID, stored_name: str, db: Session = Depends(deps.get_db)):
    """Public files only; private files are reachable through the download endpoint."""
    record = crud_file.get_public_by_stored_name(db, user_id=user_id, stored_name=stored_name)
    if not record or not os.path.isfile(record.file_path):
        raise NotFound("File not found")
    return FileResponse(record.file_path, media_type=record.mime_type)


app.add_route("/metrics", metrics_endpoint)
set_app_info(version=settings.APP_VERSION, env=settings.APP_ENV)

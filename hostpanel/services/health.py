"""Process and database health snapshot shared by the health endpoints."""
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

import psutil
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostpanel.config import settings
from hostpanel.db.session import get_pool_status

logger = logging.getLogger("hostpanel.health")

_STARTED_AT = time.monotonic()
_MB = 1024 * 1024


def uptime_seconds() -> float:
    return time.monotonic() - _STARTED_AT


def format_uptime(seconds: float) -> str:
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def memory_usage() -> Dict[str, str]:
    info = psutil.Process(os.getpid()).memory_info()
    vm = psutil.virtual_memory()
    return {
        "rss": f"{round(info.rss / _MB)} MB",
        "vms": f"{round(info.vms / _MB)} MB",
        "system_available": f"{round(vm.available / _MB)} MB",
        "system_percent": f"{vm.percent}%",
    }


def database_status(db: Session) -> Dict[str, Any]:
    """Raises whatever the driver raises when the database is unreachable."""
    db.execute(text("SELECT 1"))
    bind = db.get_bind()
    version = bind.dialect.server_version_info
    return {
        "status": "connected",
        "dialect": bind.dialect.name,
        "version": ".".join(str(v) for v in version) if version else None,
    }


def snapshot(db: Session) -> Dict[str, Any]:
    seconds = uptime_seconds()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": {"seconds": round(seconds, 3), "human": format_uptime(seconds)},
        "database": database_status(db),
        "pool": get_pool_status(),
        "memory": memory_usage(),
        "environment": settings.APP_ENV,
        "version": settings.APP_VERSION,
    }


def report(db: Session) -> Tuple[int, Dict[str, Any]]:
    """(status code, body); an unreachable database turns into a 500 body."""
    try:
        return 200, snapshot(db)
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        return 500, {"status": "unhealthy", "error": str(e)}

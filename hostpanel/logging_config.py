"""
Log output for the panel.

Every record carries the request and user it was emitted under. Services
attach the resource they act on through ``extra=`` (``domain_id``,
``file_id`` and the like); those keys become top-level fields of the JSON
line in production and trailing ``key=value`` pairs in development.
Credentials, API keys and email addresses are masked before anything is
written.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from hostpanel.config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
user_id_ctx: ContextVar[str] = ContextVar("user_id", default="-")

# Resource keys services may pass as ``extra=``
RESOURCE_FIELDS = (
    "domain_id",
    "domain_name",
    "file_id",
    "stored_name",
    "size",
    "plan_type",
    "event_type",
    "status_code",
    "duration_ms",
)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


_EMAIL = re.compile(r"([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")
_CREDENTIAL = re.compile(
    r'("?(?:password|new_password|current_password|token|access_token|secret|api_key|x-api-key|authorization)"?\s*[:=]\s*)"[^"]*"',
    re.I,
)
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._-]+", re.I)
_PANEL_KEY = re.compile(r"\bhp_[A-Za-z0-9_-]{8,}")


def _hide_local_part(match: re.Match) -> str:
    local, host = match.group(1), match.group(2)
    if len(local) <= 2:
        return f"{local[0]}***@{host}"
    return f"{local[0]}***{local[-1]}@{host}"


def mask_pii(text: str) -> str:
    text = _CREDENTIAL.sub(r'\1"***"', text)
    text = _BEARER.sub(r"\1***", text)
    text = _PANEL_KEY.sub("hp_***", text)
    return _EMAIL.sub(_hide_local_part, text)


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Request/user ids plus whichever resource fields the call site attached."""
    context: Dict[str, Any] = {
        "request_id": getattr(record, "request_id", None) or request_id_ctx.get(),
        "user_id": getattr(record, "user_id", None) or user_id_ctx.get(),
    }
    for key in RESOURCE_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return {k: v for k, v in context.items() if v not in (None, "", "-")}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shipping in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_pii(record.getMessage()),
            **record_context(record),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = mask_pii(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(request_id)s] %(message)s"

    def __init__(self) -> None:
        super().__init__(self.FORMAT, datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        context = record_context(record)
        record.request_id = context.pop("request_id", "-")
        context.pop("user_id", None)
        line = super().format(record)
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        return mask_pii(line)


def setup_logging() -> None:
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if settings.is_production or settings.is_staging:
        handler.setFormatter(JSONFormatter())
        root.setLevel(logging.INFO)
    else:
        handler.setFormatter(ConsoleFormatter())
        root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    for name in ("uvicorn.access", "httpcore", "httpx", "multipart", "python_multipart", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)

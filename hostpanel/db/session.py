"""
Database session and connection-pool setup.

Pool parameters:
- pool_size: persistent connections (default 10, fits 4-worker uvicorn)
- max_overflow: burst connections on top of pool_size
- pool_timeout: max seconds to wait for a connection
- pool_recycle: recycle period so PostgreSQL idle connections are not dropped
- pool_pre_ping: liveness check before use
"""

import logging
import time
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from hostpanel.config import settings

logger = logging.getLogger("hostpanel.db")

POOL_SIZE = settings.DB_POOL_SIZE
MAX_OVERFLOW = settings.DB_MAX_OVERFLOW
POOL_TIMEOUT = settings.DB_POOL_TIMEOUT
POOL_RECYCLE = settings.DB_POOL_RECYCLE

SLOW_QUERY_THRESHOLD_MS = settings.SLOW_QUERY_THRESHOLD_MS


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine with pooling tuned for PostgreSQL and slow-query logging attached."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_size", POOL_SIZE)
        kwargs.setdefault("max_overflow", MAX_OVERFLOW)
        kwargs.setdefault("pool_timeout", POOL_TIMEOUT)
        kwargs.setdefault("pool_recycle", POOL_RECYCLE)
    new_engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
        **kwargs,
    )
    _attach_listeners(new_engine)
    return new_engine


def _attach_listeners(target: Engine) -> None:
    @event.listens_for(target, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000

        if total_ms >= SLOW_QUERY_THRESHOLD_MS:
            # Truncate long SQL so the log stays readable
            stmt_preview = statement[:500] + "..." if len(statement) > 500 else statement
            logger.warning(
                "Slow query detected (%.2fms >= %dms): %s",
                total_ms, SLOW_QUERY_THRESHOLD_MS, stmt_preview,
            )

    if target.dialect.name == "sqlite":
        # SQLite only enforces ON DELETE CASCADE when asked to
        @event.listens_for(target, "connect")
        def _enable_sqlite_fks(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_pool_status() -> dict:
    """Connection-pool snapshot for the detailed health endpoint."""
    pool = engine.pool
    if not isinstance(pool, QueuePool):
        return {"pool_class": type(pool).__name__}
    return {
        "pool_size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
    }

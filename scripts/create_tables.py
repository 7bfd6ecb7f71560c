"""Shortcut for `alembic upgrade head` on a throwaway development database."""
from hostpanel.db.init_db import init_db
from hostpanel.logging_config import setup_logging

if __name__ == "__main__":
    setup_logging()
    init_db()

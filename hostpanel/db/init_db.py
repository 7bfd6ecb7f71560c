"""Schema bootstrap without migrations, for development databases and tests."""
import logging
from typing import Optional

from sqlalchemy.engine import Engine

from hostpanel.db.base_class import Base

logger = logging.getLogger("hostpanel.db")


def init_db(bind: Optional[Engine] = None) -> None:
    """Create every table the models declare. Existing tables are left alone."""
    import hostpanel.models  # noqa: F401  registers all tables on Base.metadata

    if bind is None:
        from hostpanel.db.session import engine as bind

    Base.metadata.create_all(bind=bind)
    logger.info("Schema ready on %s (%d tables)", bind.url.render_as_string(hide_password=True), len(Base.metadata.tables))


def drop_db(bind: Engine) -> None:
    import hostpanel.models  # noqa: F401

    Base.metadata.drop_all(bind=bind)

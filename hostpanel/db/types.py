from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import INET, JSONB
from sqlalchemy.types import String

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONBlob = JSON().with_variant(JSONB(), "postgresql")

IPAddress = String(45).with_variant(INET(), "postgresql")

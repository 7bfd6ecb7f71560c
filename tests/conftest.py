"""Pytest configuration and fixtures for integration tests."""
import os
import tempfile

# Settings are read at import time; pin a test environment before hostpanel loads
_TMP = tempfile.mkdtemp(prefix="hostpanel-test-")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP, 'app.db')}")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TMP, "uploads"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DOMAIN_VERIFICATION_MODE", "pending")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import sessionmaker

from hostpanel.config import settings
from hostpanel.db.init_db import drop_db, init_db
from hostpanel.db.session import build_engine

# --- Constants ---
DEFAULT_PASSWORD = "Secret123!"


def _build_test_db_url() -> str:
    return os.getenv("TEST_DATABASE_URL") or f"sqlite:///{os.path.join(_TMP, 'test.db')}"


# --- Session-level fixtures ---

@pytest.fixture(scope="session")
def test_engine():
    """Create a SQLAlchemy engine for the test database (session scope)."""
    engine = build_engine(_build_test_db_url())
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


# --- Per-test fixtures ---

@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def db(test_engine, session_factory):
    """A session on freshly created tables, for service-level tests."""
    init_db(test_engine)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
        drop_db(test_engine)


@pytest.fixture(scope="function")
async def client(test_engine, session_factory, upload_dir):
    """
    Async HTTP client against the app.
    Each test gets:
      - Fresh tables (create_all / drop_all)
      - get_db overridden to use the test database
      - A verifier that never passes unless a test swaps it
      - Its own upload directory
    """
    from hostpanel.main import app as fastapi_app
    from hostpanel.api.deps import get_db, get_domain_verifier
    from hostpanel.services.domain_verification import StaticVerifier
    init_db(test_engine)

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_domain_verifier] = lambda: StaticVerifier(False)

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Teardown
    fastapi_app.dependency_overrides.clear()
    drop_db(test_engine)


@pytest.fixture
def verifier_passes(client):
    """Make domain verification succeed for the rest of the test."""
    from hostpanel.main import app as fastapi_app
    from hostpanel.api.deps import get_domain_verifier
    from hostpanel.services.domain_verification import StaticVerifier

    fastapi_app.dependency_overrides[get_domain_verifier] = lambda: StaticVerifier(True)


@pytest.fixture
async def user_headers(client: AsyncClient):
    """Authorization headers for a freshly registered free-plan user."""
    return await register_user(client, "owner@example.com")


# --- Helpers ---

async def register_user(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Helper: register through the API and return auth headers."""
    resp = await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "firstName": "Test", "lastName": "User"},
    )
    assert resp.status_code == 201, f"Register failed for {email}: {resp.text}"
    return {"Authorization": f"Bearer {resp.json()['token']}"}


async def login_user(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Helper: login and return auth headers."""
    resp = await client.post(
        "/api/auth/login",
        data={"username": email, "password": password},
    )
    assert resp.status_code == 200, f"Login failed for {email}: {resp.text}"
    token = resp.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


async def add_domain(client: AsyncClient, headers: dict, name: str) -> dict:
    resp = await client.post("/api/domains", json={"domainName": name}, headers=headers)
    assert resp.status_code == 201, f"Add domain failed for {name}: {resp.text}"
    return resp.json()["domain"]


async def upload(
    client: AsyncClient,
    headers: dict,
    name: str = "hello.txt",
    content: bytes = b"hello world",
    mime: str = "text/plain",
    is_public: bool = False,
):
    return await client.post(
        "/api/files/upload",
        files={"file": (name, content, mime)},
        data={"isPublic": "true" if is_public else "false"},
        headers=headers,
    )

"""
Pytest configuration and fixtures for RendoJobs API tests.

Provides:
- Async SQLite in-memory database setup
- Fixed auth secrets and a temp-dir object store via dependency overrides
- AsyncClient for testing async endpoints
"""

import json

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from auth.dependencies import get_auth_secrets
from auth.init_data import sign_init_data
from auth.jwt_service import ResolvedUser, issue_session_token
from auth.secrets import AuthSecrets
from database import Base, get_db
from main import app
from services.object_store import LocalObjectStore, get_object_store

ISSUER_SECRET = b"botsecret"
SIGNING_SECRET = b"test-signing-secret"


@pytest.fixture
def auth_secrets() -> AuthSecrets:
    return AuthSecrets(issuer_secret=ISSUER_SECRET, signing_secret=SIGNING_SECRET)


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(str(tmp_path / "uploads"), "http://test")


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )
    async_session = sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_session

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(session_factory, auth_secrets, object_store):
    """
    AsyncClient pointing to the FastAPI app with an in-memory test database,
    fixed test secrets and a temp-dir object store.

    Yields:
        httpx.AsyncClient: Async HTTP client for making requests to the app.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_secrets] = lambda: auth_secrets
    app.dependency_overrides[get_object_store] = lambda: object_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_init_data():
    """Build a correctly signed initData string for a Telegram user."""

    def _make(
        user_id=123,
        first_name="Ada",
        last_name="L",
        secret: bytes = ISSUER_SECRET,
        **extra,
    ) -> str:
        user = {"id": user_id, "first_name": first_name, "last_name": last_name}
        fields = {
            "auth_date": "1700000000",
            "query_id": "AA",
            "user": json.dumps(user, separators=(",", ":")),
        }
        fields.update(extra)
        return sign_init_data(fields, secret)

    return _make


@pytest.fixture
def auth_header(auth_secrets):
    """Authorization header for a session token of the given user."""

    def _make(user_id=1, external_id="123", first_name="Ada", last_name="L") -> dict:
        session = issue_session_token(
            ResolvedUser(
                id=user_id,
                external_id=external_id,
                first_name=first_name,
                last_name=last_name,
            ),
            auth_secrets,
        )
        return {"Authorization": f"Bearer {session.token}"}

    return _make

"""Test configuration and fixtures.

Every test gets a fresh in-memory SQLite database:
1. The schema is created on a StaticPool engine (one shared connection)
2. The app's session dependency is overridden with the test session
3. Rate limiting is disabled through .env.test
"""

from collections.abc import AsyncGenerator
from pathlib import Path

from dotenv import load_dotenv

# Load test environment variables BEFORE any app imports
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.config.settings import settings  # noqa: E402
from src.database.base import Base  # noqa: E402
from src.database.client import enable_sqlite_foreign_keys  # noqa: E402
from src.database.dependencies import get_db_session  # noqa: E402
from src.features.account.models import Account  # noqa: E402
from src.features.auth.dependencies import get_token_issuer  # noqa: E402
from src.features.auth.jwt_utils import Identity, TokenIssuer  # noqa: E402
from src.features.auth.service import AuthService  # noqa: E402
from src.main import app  # noqa: E402

# Database Fixtures - Function Scope (fresh database per test)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory database with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a database session per test."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as async_session:
        yield async_session


# FastAPI Client & Dependency Overrides


@pytest_asyncio.fixture(autouse=True)
async def override_get_db_session(session: AsyncSession):
    """Override the database session dependency with the test session.

    Endpoints and direct service calls then see the same data.
    """

    async def _get_test_session():
        yield session

    app.dependency_overrides[get_db_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Create an unauthenticated async HTTP test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def issuer() -> TokenIssuer:
    """Token issuer configured exactly like the app's."""
    return get_token_issuer(settings)


@pytest.fixture
def auth_service(session: AsyncSession, issuer: TokenIssuer) -> AuthService:
    return AuthService(session, issuer, settings)


# Per-request sessions (concurrency tests)


@pytest_asyncio.fixture
async def per_request_sessions(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Give every request its own session on a file database, like production.

    The shared in-memory session cannot serve overlapping requests, so tests
    that fire requests concurrently use this instead. Yields the session
    factory for seeding and inspecting data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_request_session():
        async with factory() as request_session:
            try:
                yield request_session
                await request_session.commit()
            except Exception:
                await request_session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _get_request_session
    yield factory

    await engine.dispose()


# Test Account Factories


@pytest_asyncio.fixture
async def make_account(session: AsyncSession):
    """Factory fixture to create test accounts with custom fields.

    Usage:
        account = await make_account()                      # defaults
        admin = await make_account(is_admin=True)           # elevated
        named = await make_account(username="alice")

    The account is flushed to the database so its `id` is populated.
    """
    counter = 0  # Counter for unique username generation

    async def _factory(username=None, password="TestPass123!", is_admin=False) -> Account:
        nonlocal counter
        counter += 1

        if username is None:
            username = f"testuser{counter}"

        account = Account(
            username=username,
            hashed_password=Account.hash_password(password),
            is_admin=is_admin,
        )
        session.add(account)
        await session.flush()
        await session.refresh(account)
        return account

    yield _factory


@pytest.fixture
def bearer(issuer: TokenIssuer):
    """Build an Authorization header for an account."""

    def _bearer(account: Account) -> dict[str, str]:
        identity = Identity(user_id=account.id, username=account.username, is_admin=account.is_admin)
        return {"Authorization": f"Bearer {issuer.issue(identity)}"}

    return _bearer


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, make_account, bearer):
    """Client carrying a valid elevated access token.

    Returns:
        tuple: (client, headers, account)

    """
    account = await make_account(username="rootadmin", is_admin=True)
    yield client, bearer(account), account


@pytest_asyncio.fixture
async def user_client(client: AsyncClient, make_account, bearer):
    """Client carrying a valid non-elevated access token.

    Returns:
        tuple: (client, headers, account)

    """
    account = await make_account(username="plainuser")
    yield client, bearer(account), account

"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from infrastructure.database.models import Base
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


# Compile JSONB as JSON for SQLite (used in tests)
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine, one database per test.

    A file rather than ``:memory:`` so concurrent sessions share the data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cdp.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def uow_factory(session_factory: async_sessionmaker[AsyncSession]) -> Any:
    """Factory producing real Units of Work against the test database."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A raw session for asserting on stored rows."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(
    uow_factory: Any,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client wired to the SQLite test database.

    Service dependencies are overridden so every request runs through real
    Units of Work on the per-test database.
    """
    from api.v1.dependencies import (
        get_audience_service,
        get_profile_service,
        get_tracking_service,
    )
    from domain.services.audience_service import AudienceService
    from domain.services.identity_resolver import IdentityResolver
    from domain.services.profile_service import ProfileService
    from domain.services.tracking_service import TrackingService
    from infrastructure.database.session import get_async_session
    from main import create_app

    app = create_app()
    resolver = IdentityResolver(conflict_retries=3)

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_profile_service] = lambda: ProfileService(
        uow_factory, resolver=resolver
    )
    app.dependency_overrides[get_tracking_service] = lambda: TrackingService(
        uow_factory, resolver=resolver
    )
    app.dependency_overrides[get_audience_service] = lambda: AudienceService(uow_factory)
    app.dependency_overrides[get_async_session] = override_get_async_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()

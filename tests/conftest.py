from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cardswap.db.database import get_session
from cardswap.db.operations import create_profile, replace_holdings, upsert_cards
from cardswap.main import app
from cardswap.models.card import Card
from cardswap.models.db import Base, ProfileDB

MakeProfile = Callable[..., Awaitable[ProfileDB]]

SAMPLE_CARDS = [
    Card(id="card-a", name="Jinx, Loose Cannon", set_code="OGN", collector_number="001"),
    Card(id="card-b", name="Ahri, Nine-Tailed Fox", set_code="OGN", collector_number="042"),
    Card(id="card-c", name="Calm Rune", set_code="OGN", collector_number="120"),
    Card(id="card-d", name="Garen, Might of Demacia", set_code="OGN", collector_number="210"),
]


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests, with the sample cards loaded."""
    async with session_factory() as session:
        await upsert_cards(session, SAMPLE_CARDS)
        await session.commit()
        yield session


@pytest.fixture
def make_profile(session: AsyncSession) -> MakeProfile:
    """Create a profile with the given HAVE and WANT lists."""

    async def _make(
        profile_id: str,
        have: dict[str, int] | None = None,
        want: dict[str, int] | None = None,
        **fields: str,
    ) -> ProfileDB:
        profile = await create_profile(
            session,
            user_id=f"user-{profile_id}",
            display_name=fields.pop("display_name", profile_id.title()),
            profile_id=profile_id,
            **fields,
        )
        await replace_holdings(session, profile_id, have or {}, want or {})
        await session.commit()
        return profile

    return _make


@pytest.fixture
def set_holdings(session: AsyncSession) -> Callable[..., Awaitable[None]]:
    """Replace a profile's holdings and commit."""

    async def _set(
        profile_id: str,
        have: dict[str, int] | None = None,
        want: dict[str, int] | None = None,
    ) -> None:
        await replace_holdings(session, profile_id, have or {}, want or {})
        await session.commit()

    return _set


@pytest.fixture
async def client(session: AsyncSession, session_factory) -> AsyncIterator[AsyncClient]:
    """Provide an async test client with overridden database session."""

    async def override_get_session():
        async with session_factory() as request_session:
            try:
                yield request_session
                await request_session.commit()
            except Exception:
                await request_session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()

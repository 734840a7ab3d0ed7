"""Shared test fixtures for the async database, sessions, users, and addresses."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from address_timeline.core.config import Settings
from address_timeline.models.address import Address
from address_timeline.models.base import Base
from address_timeline.models.user import User


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        log_level="DEBUG",
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
async def async_engine(settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


UserFactory = Callable[..., Awaitable[uuid.UUID]]
AddressFactory = Callable[..., Awaitable[uuid.UUID]]


@pytest.fixture
def make_user(async_session: AsyncSession) -> UserFactory:
    """Factory inserting a user and returning its ID.

    IDs are returned instead of ORM objects so tests can keep using them
    after a failed write rolls the session back.
    """

    async def _make(
        smart_id: str = "AB12CD34",
        *,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        phone: str = "555-0100",
    ) -> uuid.UUID:
        user = User(
            id=uuid.uuid4(),
            smart_id=smart_id,
            email=f"{smart_id.lower()}@example.com",
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
        async_session.add(user)
        await async_session.commit()
        return user.id

    return _make


@pytest.fixture
def make_address(async_session: AsyncSession) -> AddressFactory:
    """Factory inserting an address and returning its ID."""

    async def _make(
        line_one: str = "1 Main St",
        *,
        city: str = "Springfield",
        zip_code: str = "62701",
        phone: str | None = None,
        delivery_instructions: str | None = None,
    ) -> uuid.UUID:
        address = Address(
            id=uuid.uuid4(),
            line_one=line_one,
            city=city,
            state="IL",
            zip_code=zip_code,
            country="US",
            phone=phone,
            delivery_instructions=delivery_instructions,
        )
        async_session.add(address)
        await async_session.commit()
        return address.id

    return _make


@pytest.fixture
async def user_id(make_user: UserFactory) -> uuid.UUID:
    """A single user with no assignments."""
    return await make_user()


@pytest.fixture
async def address_id(make_address: AddressFactory) -> uuid.UUID:
    """A single address."""
    return await make_address()

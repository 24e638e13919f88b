import os

# Set test environment
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SUPABASE_URL"] = "http://supabase.test"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"

import time
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fakes import FakeAuthAdmin
from outstocked.database import Base, get_db
from outstocked.main import app
from outstocked.models import (
    InventoryItem,
    InventoryRequest,
    ItemAssignment,
    Location,
    LocationManager,
    Organization,
    UserProfile,
)
from outstocked.utils.auth import TOKEN_AUDIENCE, get_auth_admin

# In-memory SQLite by default; point TEST_DATABASE_URL at Postgres to run against it
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def create_access_token(
    user_id: UUID,
    email: Optional[str] = None,
    expires_delta: timedelta = timedelta(hours=1),
    secret: str = "test-jwt-secret",
    audience: str = TOKEN_AUDIENCE,
) -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": audience,
        "role": "authenticated",
        "exp": int(time.time() + expires_delta.total_seconds()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def headers_for(profile: UserProfile) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(profile.id, profile.email)}"}


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async engine for each test."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def auth_admin() -> FakeAuthAdmin:
    return FakeAuthAdmin()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, auth_admin: FakeAuthAdmin
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database and auth service overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_admin] = lambda: auth_admin

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def organization(db_session: AsyncSession) -> Organization:
    org = Organization(name="Acme Supplies")
    db_session.add(org)
    await db_session.commit()
    await db_session.refresh(org)
    return org


@pytest_asyncio.fixture
async def other_organization(db_session: AsyncSession) -> Organization:
    org = Organization(name="Globex")
    db_session.add(org)
    await db_session.commit()
    await db_session.refresh(org)
    return org


async def make_profile(
    db_session: AsyncSession,
    organization: Organization,
    role: str = "user",
    display_name: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> UserProfile:
    unique_id = uuid4()
    profile = UserProfile(
        id=unique_id,
        organization_id=organization.id,
        email=f"user-{unique_id.hex[:8]}@example.com",
        display_name=display_name,
        role=role,
        created_at=created_at or BASE_TIME,
    )
    db_session.add(profile)
    await db_session.commit()
    await db_session.refresh(profile)
    return profile


@pytest_asyncio.fixture
async def admin_profile(db_session: AsyncSession, organization: Organization) -> UserProfile:
    return await make_profile(db_session, organization, role="admin", display_name="Alice Admin")


@pytest_asyncio.fixture
async def member_profile(db_session: AsyncSession, organization: Organization) -> UserProfile:
    return await make_profile(
        db_session,
        organization,
        display_name="Max Member",
        created_at=BASE_TIME + timedelta(days=1),
    )


@pytest.fixture
def admin_headers(admin_profile: UserProfile) -> dict[str, str]:
    return headers_for(admin_profile)


@pytest.fixture
def member_headers(member_profile: UserProfile) -> dict[str, str]:
    return headers_for(member_profile)


@pytest_asyncio.fixture
async def item(db_session: AsyncSession, organization: Organization) -> InventoryItem:
    item = InventoryItem(
        organization_id=organization.id, name="Blue Widget", sku="BW-1", quantity=50
    )
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


@pytest_asyncio.fixture
async def location(db_session: AsyncSession, organization: Organization) -> Location:
    location = Location(organization_id=organization.id, name="Downtown Store", address="1 Main St")
    db_session.add(location)
    await db_session.commit()
    await db_session.refresh(location)
    return location


@pytest_asyncio.fixture
async def managed_location(
    db_session: AsyncSession, location: Location, member_profile: UserProfile
) -> Location:
    db_session.add(LocationManager(location_id=location.id, user_id=member_profile.id))
    await db_session.commit()
    return location


@pytest_asyncio.fixture
async def assignment(
    db_session: AsyncSession,
    item: InventoryItem,
    managed_location: Location,
    admin_profile: UserProfile,
) -> ItemAssignment:
    assignment = ItemAssignment(
        item_id=item.id,
        location_id=managed_location.id,
        assigned_by=admin_profile.id,
        quantity_assigned=5,
    )
    db_session.add(assignment)
    await db_session.commit()
    await db_session.refresh(assignment)
    return assignment


async def make_request(
    db_session: AsyncSession,
    requester: UserProfile,
    item_id: UUID,
    location_id: UUID,
    quantity: int = 3,
    status: str = "pending",
    requested_at: Optional[datetime] = None,
) -> InventoryRequest:
    request = InventoryRequest(
        organization_id=requester.organization_id,
        location_id=location_id,
        item_id=item_id,
        quantity_requested=quantity,
        status=status,
        requested_by=requester.id,
        requested_at=requested_at or BASE_TIME,
    )
    db_session.add(request)
    await db_session.commit()
    await db_session.refresh(request)
    return request

"""
Pytest configuration and fixtures for backend tests
"""
import os
import sys
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

# Settings are read at import time, so the test environment goes first
os.environ["ENV"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["ENABLE_REQUEST_LOGGING"] = "false"
os.environ["INTERNAL_API_SECRET"] = "test-internal-secret"
os.environ["AUTO_DISPATCH_FAMILY_ALERTS"] = "false"
os.environ.pop("FIREBASE_CREDENTIALS", None)
os.environ.pop("SENTRY_DSN", None)

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from main import app
from models.authentication import UserSession
from models.connection import Connection
from models.family import FamilyGroup, FamilyMembership
from models.place import Place
from models.sos import SOSEvent
from models.user import User
from services.call_control_service import call_control_service
from services.push_service import push_service
from services.realtime_service import realtime_service

INTERNAL_HEADERS = {"x-internal": "test-internal-secret"}


@pytest.fixture(scope="function")
async def engine():
    """Fresh in-memory database for each test"""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield test_engine
    finally:
        await test_engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine):
    session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(db_session):
    """Async test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def channels():
    """Realtime, push and call-control never leave the process in tests"""
    with patch.object(realtime_service, "broadcast", new_callable=AsyncMock, return_value=1) as broadcast, \
         patch.object(push_service, "send", new_callable=AsyncMock, return_value="projects/test/messages/1") as push, \
         patch.object(call_control_service, "pause_sequence", new_callable=AsyncMock, return_value=True) as pause:
        yield SimpleNamespace(broadcast=broadcast, push=push, pause=pause)


@pytest.fixture
def internal_headers():
    return dict(INTERNAL_HEADERS)


@pytest.fixture
def create_user(db_session):
    async def _create_user(**overrides) -> User:
        data = {
            "first_name": "Maria",
            "last_name": "Lopez",
            "email": f"{uuid.uuid4().hex[:8]}@example.com",
            "phone_number": "+34600000000",
            "country_code": "FR",
            "subscription_regional": False,
            "is_active": True,
        }
        data.update(overrides)
        user = User(**data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create_user


@pytest.fixture
def auth_headers(db_session):
    """Issue a live session for the user and return bearer headers"""
    async def _auth_headers(user: User) -> dict:
        session = UserSession(
            session_id=str(uuid.uuid4()),
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + timedelta(days=1),
            is_active=True,
        )
        db_session.add(session)
        await db_session.commit()
        return {"Authorization": f"Bearer {session.session_id}"}
    return _auth_headers


@pytest.fixture
def create_connection(db_session):
    async def _create_connection(owner: User, contact: User = None, type="trusted_contact", status="active") -> Connection:
        connection = Connection(
            owner_id=owner.id,
            contact_user_id=contact.id if contact else None,
            type=type,
            status=status,
        )
        db_session.add(connection)
        await db_session.commit()
        await db_session.refresh(connection)
        return connection
    return _create_connection


@pytest.fixture
def create_family(db_session):
    """Group owned by `owner` with the given members (owner included as active)"""
    async def _create_family(owner: User, members=(), status="active") -> FamilyGroup:
        group = FamilyGroup(owner_user_id=owner.id, name="Family")
        db_session.add(group)
        await db_session.flush()
        db_session.add(FamilyMembership(group_id=group.id, user_id=owner.id, status="active", billing_type="owner"))
        for member in members:
            db_session.add(FamilyMembership(group_id=group.id, user_id=member.id, status=status, billing_type="owner"))
        await db_session.commit()
        await db_session.refresh(group)
        return group
    return _create_family


@pytest.fixture
def create_event(db_session):
    async def _create_event(user: User, group: FamilyGroup = None, status="active", **overrides) -> SOSEvent:
        data = {
            "user_id": user.id,
            "group_id": group.id if group else None,
            "lat": 40.0,
            "lng": -3.0,
            "address": "Calle Mayor 1, Madrid",
            "status": status,
        }
        data.update(overrides)
        event = SOSEvent(**data)
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event
    return _create_event


@pytest.fixture
def create_place(db_session):
    async def _create_place(group: FamilyGroup, lat=40.0, lng=-3.0, radius_m=150.0, name="Home") -> Place:
        place = Place(family_group_id=group.id, name=name, lat=lat, lng=lng, radius_m=radius_m)
        db_session.add(place)
        await db_session.commit()
        await db_session.refresh(place)
        return place
    return _create_place


@pytest.fixture
def count_rows(db_session):
    async def _count_rows(model, *criteria) -> int:
        result = await db_session.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar_one()
    return _count_rows

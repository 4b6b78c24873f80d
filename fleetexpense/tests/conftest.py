"""
Shared fixtures: in-memory database, fake Redis, HTTP client and owners.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from fleetexpense.app.main import app
from fleetexpense.app.db.session import get_db, Base
from fleetexpense.app.core.redis_client import get_redis

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """Trip and truck deletes rely on ON DELETE CASCADE."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class FakeRedis:
    """The subset of redis.asyncio used by token revocation."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}
        self.ttls = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return FakeRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


async def register_owner(client, username: str) -> dict:
    """Register an owner through the API and return its auth header and id."""
    response = await client.post("/v1/auth/register", json={
        "email": f"{username}@test.com",
        "username": username,
        "password": "password123"
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
        "user_id": body["user_id"],
    }


@pytest.fixture
async def owner(client):
    return await register_owner(client, "owner1")


@pytest.fixture
async def other_owner(client):
    return await register_owner(client, "owner2")


@pytest.fixture
async def truck(client, owner):
    response = await client.post("/v1/trucks", headers=owner["headers"], json={
        "name": "Tata Prima",
        "truck_number": "MH12AB1234",
        "model": "Prima 4028.S"
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def seeded(db_session):
    """An owner with one truck, created directly in the database."""
    from fleetexpense.app.core.security import get_password_hash
    from fleetexpense.app.models.truck import Truck
    from fleetexpense.app.models.user import User

    user = User(email="seed@test.com", username="seed", hashed_password=get_password_hash("password123"))
    db_session.add(user)
    await db_session.flush()
    truck = Truck(owner_id=user.id, name="Ashok Leyland", truck_number="DL01CA0001", model="2820")
    db_session.add(truck)
    await db_session.commit()
    return {"owner_id": user.id, "truck_id": truck.id}

"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool, StaticPool

from backend.app.main import app
from backend.app.core.jwt import create_access_token
from backend.app.db.document_store import InMemoryDocumentStore, get_document_store
from backend.app.db.session import Base
from backend.app.db.sql_store import SqlDocumentStore
from backend.app.models.enums import Collections, UserRole
import backend.app.core.redis_client as redis_client_module

# Register the documents table with Base
from backend.app.models.document import Document  # noqa: F401

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

ROSTER = {
    "A": {
        "1": ["Ani", "Budi"],
        "2": ["Citra"],
    },
    "B": {
        "10": ["Dewi"],
        "2": ["Eka"],
    },
}

SUBJECTS = ["Grammar", "Speaking"]

USERS = {
    "admin-uid": {"email": "admin@camp.id", "name": "Admin", "role": UserRole.ADMIN.value},
    "panitia-uid": {"email": "rina@camp.id", "name": "Rina", "role": UserRole.PANITIA.value},
    "dosen-uid": {"email": "joko@camp.id", "name": "Joko", "role": UserRole.DOSEN.value},
}


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
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


@pytest.fixture
def mock_redis(monkeypatch):
    """Replace the global redis client used for token revocation."""
    client = MockRedis()
    monkeypatch.setattr(redis_client_module, "redis_client", client)
    return client


@pytest.fixture
async def store(mock_redis):
    """SQL document store on a fresh SQLite database, wired into the app."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sql_store = SqlDocumentStore(TestingSessionLocal)
    app.dependency_overrides[get_document_store] = lambda: sql_store

    yield sql_store

    app.dependency_overrides.pop(get_document_store, None)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def file_store(tmp_path):
    """
    SQL document store on a SQLite file, one connection per session.

    Concurrent sessions then run in separate database transactions instead
    of sharing the single StaticPool connection.
    """
    file_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'camp.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield SqlDocumentStore(async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False))

    await file_engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


async def seed(target):
    await target.set(Collections.STUDENTS, Collections.ROSTER_DOCUMENT, ROSTER)
    await target.set(Collections.SUBJECTS, Collections.SUBJECTS_DOCUMENT, {"mata_kuliah": SUBJECTS})
    for uid, profile in USERS.items():
        await target.set(Collections.USERS, uid, profile)


@pytest.fixture
async def seeded_store(store):
    await seed(store)
    return store


@pytest.fixture
async def seeded_memory_store(memory_store):
    await seed(memory_store)
    return memory_store


@pytest.fixture
async def seeded_file_store(file_store):
    await seed(file_store)
    return file_store


def make_token(uid: str) -> str:
    profile = USERS.get(uid, {})
    return create_access_token(data={
        "sub": uid,
        "email": profile.get("email"),
        "name": profile.get("name"),
        "role": profile.get("role"),
    })


def bearer(uid: str) -> dict:
    return {"Authorization": f"Bearer {make_token(uid)}"}


@pytest.fixture
def admin_headers():
    return bearer("admin-uid")


@pytest.fixture
def panitia_headers():
    return bearer("panitia-uid")


@pytest.fixture
def dosen_headers():
    return bearer("dosen-uid")


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def headers_for():
    """Build Authorization headers for any uid."""
    return bearer

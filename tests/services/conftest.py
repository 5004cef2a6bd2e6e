"""Service test fixtures — async DB, FastAPI test client and seed factories.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so the readiness check sees the test engine
    - Identity travels in gateway headers; the settings fixture opts in to
      trusting them, standing in for the upstream gateway

Design Decisions:
    - SQLite in-memory for route tests: fast, no external dependency
    - file_manager uses a file database so concurrent sessions get their own
      connections and really contend for the write lock
    - Seed factories insert rows directly, bypassing validation, so past
      lectures and decided requests can be set up
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from talkhub.config import Settings, get_settings
from talkhub.db.base import Base
from talkhub.infrastructure.database import get_db, DatabaseSessionManager
from talkhub.models.lecture import Lecture
from talkhub.models.lecture_registration import LectureRegistration
from talkhub.models.talk_request import TalkRequest
import talkhub.infrastructure.database as db_module
from talkhub.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def settings():
    """Header-trusting settings: tests play the role of the upstream gateway."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:", identity_trust_headers=True,
    )


@pytest.fixture
async def client(test_engine, test_session_factory, settings):
    """FastAPI test client with DB and settings dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def file_manager(tmp_path):
    """Session manager over a file database (one connection per session)."""
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'talkhub.db'}")
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


# ─── Identity Headers ────────────────────────────────────────────

@pytest.fixture
def member_headers():
    return {"X-User-Id": "member-1", "X-User-Role": "member"}


@pytest.fixture
def other_member_headers():
    return {"X-User-Id": "member-2", "X-User-Role": "member"}


@pytest.fixture
def admin_headers():
    return {"X-User-Id": "admin-1", "X-User-Role": "admin"}


# ─── Seed Factories ──────────────────────────────────────────────

def _lecture_row(**overrides) -> dict:
    row = {
        "title": "Practical SQLAlchemy",
        "description": "Sessions, transactions and the identity map",
        "instructor_id": "instructor-1",
        "starts_at": datetime.now(timezone.utc) + timedelta(days=7),
        "duration": 60,
        "mode": "offline",
        "venue": "Room 101",
        "meet_link": None,
        "capacity": 3,
        "registered_count": 0,
        "prerequisites": [],
        "tags": ["python", "databases"],
        "status": "scheduled",
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_lecture():
    """Factory inserting a Lecture (plus attendees) into the given session factory."""
    async def _make(session_factory, attendees: tuple[str, ...] = (), **overrides):
        row = _lecture_row(**{"registered_count": len(attendees), **overrides})
        async with session_factory() as db:
            lecture = Lecture(**row)
            lecture.registrations = [
                LectureRegistration(member_id=member) for member in attendees
            ]
            db.add(lecture)
            await db.commit()
            return lecture.id
    return _make


@pytest.fixture
def make_request():
    """Factory inserting a TalkRequest, pending unless overridden."""
    async def _make(session_factory, **overrides):
        row = {
            "title": "Async Python in production",
            "description": "Lessons from running asyncio services",
            "proposer_id": "member-1",
            "starts_at": datetime.now(timezone.utc) + timedelta(days=10),
            "duration": 45,
            "mode": "online",
            "venue": None,
            "meet_link": "https://meet.example.com/async",
            "capacity": 20,
            "prerequisites": ["Python"],
            "tags": ["asyncio"],
            "materials": "https://slides.example.com/async",
            "decision": "pending",
        }
        row.update(overrides)
        async with session_factory() as db:
            request = TalkRequest(**row)
            db.add(request)
            await db.commit()
            return request.id
    return _make

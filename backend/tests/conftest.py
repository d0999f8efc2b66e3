"""Pytest configuration for slate tests."""
import os
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

# Add backend/ to path so `slate` imports without installing
_BACKEND = Path(__file__).parent.parent
if str(_BACKEND) not in sys.path:
    sys.path.insert(0, str(_BACKEND))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.gettempdir()}/slate-tests.db")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SHARE_LINK_PASSWORD_ROUNDS", "4")
os.environ.setdefault("NOTIFY_BACKOFF_SECS", "0")
os.environ.setdefault("SENDGRID_API_KEY", "")

import pytest
from httpx import ASGITransport, AsyncClient

from slate.core.database import Base, build_engine, build_sessionmaker, get_db
from slate.core.security import create_access_token
from slate.dependencies import get_dispatcher
from slate.domain.types import UserRecord
from slate.models import User
from slate.notifications import NotificationDispatcher
from slate.sharing import PresentationService, ShareGrantStore, ShareLinkManager
from slate.storage import InMemoryStorageGateway

ALICE = UserRecord(id="user-alice", name="Alice", email="alice@example.com")
BOB = UserRecord(id="user-bob", name="Bob", email="bob@example.com")
CAROL = UserRecord(id="user-carol", name="Carol", email="carol@example.com")


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSender:
    """Stands in for send_email; can be told to fail the first N calls."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls = []
        self.sent = []

    async def __call__(self, to_email: str, subject: str, body: str) -> None:
        self.calls.append((to_email, subject, body))
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("smtp down")
        self.sent.append((to_email, subject, body))


def auth_headers(user: UserRecord) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


# ── in-memory core ───────────────────────────────────────────────────

@pytest.fixture
def gateway():
    gw = InMemoryStorageGateway()
    for user in (ALICE, BOB, CAROL):
        gw.add_user(user)
    return gw


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def grants(gateway):
    return ShareGrantStore(gateway)


@pytest.fixture
def links(gateway, grants, clock):
    return ShareLinkManager(gateway, grants, password_rounds=4, clock=clock)


@pytest.fixture
def presentations(gateway, grants):
    return PresentationService(gateway, grants)


@pytest.fixture
async def deck(presentations):
    """A private presentation owned by Alice."""
    result = await presentations.create(ALICE.id, "Quarterly review", "Q3 numbers")
    return result.value


# ── SQLite-backed storage ────────────────────────────────────────────

@pytest.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'slate.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(db_engine):
    factory = build_sessionmaker(db_engine)
    async with factory() as session:
        for user in (ALICE, BOB, CAROL):
            session.add(User(id=user.id, name=user.name, email=user.email, hashed_password="!"))
        await session.commit()
    return factory


# ── HTTP ─────────────────────────────────────────────────────────────

@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
async def dispatcher(sender):
    dispatcher = NotificationDispatcher(sender, concurrency=2, max_attempts=3, backoff=0, enabled=True)
    await dispatcher.start()
    yield dispatcher
    await dispatcher.stop()


@pytest.fixture
async def client(session_factory, dispatcher):
    from slate.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()

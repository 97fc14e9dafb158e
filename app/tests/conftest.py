import os

# Set test env BEFORE any imports that read config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from app.core.redis_config import get_redis_client
from app.core.security import create_access_token
from app.database.db import Base, get_db
from app.main import app
from app.models import Court, Event, SkillLevel, User, UserRole
from app.routes.membership import get_notifier
from app.services.membership import MembershipLedger

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def notifications() -> list:
    """Promotion notices captured instead of being queued to Celery."""
    return []


@pytest.fixture
def ledger(db_session: Session, fake_redis, notifications) -> MembershipLedger:
    return MembershipLedger(
        db_session,
        lock_client=fake_redis,
        notifier=notifications.append,
        gate_waitlist_on_skill=True,
        blocking_timeout=1,
    )


@pytest.fixture
def client(fake_redis, notifications):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: fake_redis
    app.dependency_overrides[get_notifier] = lambda: notifications.append
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session):
    counter = {"n": 0}

    def _make_user(
        name: str | None = None,
        skill_level: str = SkillLevel.INTERMEDIATE_3_5.value,
        role: UserRole = UserRole.USER,
    ) -> User:
        counter["n"] += 1
        name = name or f"player{counter['n']}"
        user = User(
            name=name,
            email=f"{name.lower()}@example.com",
            password_hash="not-a-real-hash",
            skill_level=skill_level,
            role=role.value,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def court(db_session: Session) -> Court:
    court = Court(name="Court 1", description="Center court", is_indoor=False, capacity=4, active=True)
    db_session.add(court)
    db_session.commit()
    db_session.refresh(court)
    return court


@pytest.fixture
def make_event(db_session: Session, court: Court):
    def _make_event(
        max_players: int = 4,
        min_skill: str | None = None,
        max_skill: str | None = None,
        title: str = "Open Play",
    ) -> Event:
        start = datetime.now(timezone.utc) + timedelta(days=1)
        event = Event(
            title=title,
            start=start,
            end=start + timedelta(hours=2),
            max_players=max_players,
            current_players=0,
            min_skill=min_skill,
            max_skill=max_skill,
            courts=[court],
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers

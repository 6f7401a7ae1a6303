"""Pytest fixtures for the tenancy and authorization engine.

Provides reusable test fixtures for:
- In-memory SQLite database with a fresh schema per test
- Organization / user / membership factories
- Seeded capability catalog and provisioned organizations
- Authenticated TestClient instances (bearer JWT)
- Captured notifications and an in-memory rate limiter backend

Usage:
    def test_switch(client, make_org, make_user, add_membership, auth_headers):
        org = make_org("acme")
        user = make_user("ops@acme.test")
        add_membership(user, org, role="admin")
        response = client.post("/api/v1/workspace/active", headers=auth_headers(user), ...)
"""

import os
import sys
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("CHANNEL_SERVICE_TOKEN", "test-channel-service-token")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from typing import Callable, Dict, Generator, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from orggate import models  # noqa: E402,F401
from orggate.auth.jwt import create_access_token  # noqa: E402
from orggate.capabilities import gateway  # noqa: E402
from orggate.capabilities.rate_limit import OrgRateLimiter  # noqa: E402
from orggate.capabilities.registry import provision_organization, seed_capability_catalog  # noqa: E402
from orggate.config import get_settings  # noqa: E402
from orggate.database import SessionLocal, engine, get_db  # noqa: E402
from orggate.models.base import Base  # noqa: E402
from orggate.models.membership import Membership  # noqa: E402
from orggate.models.org import Org  # noqa: E402
from orggate.models.user import User  # noqa: E402
from orggate.notifications import dispatcher  # noqa: E402


class FakeRedis:
    """In-memory stand-in for the sorted-set commands the rate limiter uses."""

    def __init__(self):
        self.sets: Dict[str, Dict[str, float]] = {}

    def zremrangebyscore(self, key, low, high):
        members = self.sets.get(key, {})
        for member, score in list(members.items()):
            if low <= score <= high:
                del members[member]

    def zcard(self, key):
        return len(self.sets.get(key, {}))

    def zadd(self, key, mapping):
        self.sets.setdefault(key, {}).update(mapping)

    def expire(self, key, seconds):
        return True


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch) -> List[dict]:
    """Capture notifications instead of queueing them on Celery."""
    sent: List[dict] = []

    def record(org_id, event, recipient_ids, payload):
        sent.append({"org_id": org_id, "event": event, "recipient_ids": recipient_ids, "payload": payload})

    monkeypatch.setattr(dispatcher, "enqueue_notification", record)
    return sent


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Back the shared org rate limiter with an in-memory store."""
    redis = FakeRedis()
    limiter = OrgRateLimiter(client=redis)
    monkeypatch.setattr(gateway, "get_rate_limiter", lambda: limiter)
    return redis


@pytest.fixture
def override_settings(monkeypatch) -> Generator[Callable[..., None], None, None]:
    """Override settings via environment for one test.

    Usage:
        override_settings(LOBBY_ORG_SLUG="lobby")
    """
    def apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, str(value))
        get_settings.cache_clear()

    yield apply
    get_settings.cache_clear()


@pytest.fixture
def make_org(db_session: Session) -> Callable[..., Org]:
    def factory(slug: str, name: Optional[str] = None, status: str = "active", require_2fa: bool = False) -> Org:
        org = Org(slug=slug, name=name or slug.replace("-", " ").title(), status=status, require_2fa=require_2fa)
        db_session.add(org)
        db_session.commit()
        db_session.refresh(org)
        return org
    return factory


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def factory(email: str, name: str = "Test User", totp_enabled: bool = False, status: str = "ACTIVE") -> User:
        user = User(email=email, name=name, totp_enabled=totp_enabled, status=status)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return factory


@pytest.fixture
def add_membership(db_session: Session) -> Callable[..., Membership]:
    def factory(user: User, org: Org, role: str = "editor", status: str = "active") -> Membership:
        membership = Membership(user_id=user.id, organization_id=org.id, role=role, status=status)
        db_session.add(membership)
        db_session.commit()
        db_session.refresh(membership)
        return membership
    return factory


@pytest.fixture
def catalog(db_session: Session) -> int:
    """Seed the built-in capability catalog."""
    created = seed_capability_catalog(db_session)
    db_session.commit()
    return created


@pytest.fixture
def provision_org(db_session: Session, catalog) -> Callable[..., Org]:
    """Provision an org with its security policy and capability rows."""
    def factory(slug: str, name: Optional[str] = None, require_2fa: bool = False) -> Org:
        org = provision_organization(db_session, name or slug.title(), slug, require_2fa=require_2fa)
        db_session.commit()
        db_session.refresh(org)
        return org
    return factory


@pytest.fixture
def auth_headers() -> Callable[..., Dict[str, str]]:
    def build(user: User, **extra: str) -> Dict[str, str]:
        token = create_access_token(user_id=user.id, email=user.email)
        return {"Authorization": f"Bearer {token}", **extra}
    return build


@pytest.fixture
def channel_headers() -> Dict[str, str]:
    return {"X-Channel-Service-Token": get_settings().CHANNEL_SERVICE_TOKEN}


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client sharing the test database session."""
    from orggate.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

"""
Pytest configuration and fixtures for Content Review API tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_BOOTSTRAP_EMAIL", "admin@example.com")

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from content_review.database import Base, get_db
from content_review.limiter import limiter
from content_review.main import app
from content_review.models import AuthUser, ContentItem
from content_review.auth import get_password_hash, create_access_token

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "testpassword123"


def get_test_db():
    """Get the shared test database session."""
    yield _test_session


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)
    _test_session = TestingSessionLocal()
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


def _create_identity(db, email, full_name=None):
    """Sign up an identity; the insert hook provisions its profile."""
    user = AuthUser(
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        full_name=full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user):
    token = create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


def _create_item(db, creator, assignee, schedule_date=None, **overrides):
    values = dict(
        caption="Launch teaser",
        content_type="Post",
        media_url="https://drive.google.com/file/d/abc123/view",
        schedule_date=schedule_date or date.today() + timedelta(days=1),
        created_by=creator.id if creator else None,
        assigned_to=assignee.id,
    )
    values.update(overrides)
    item = ContentItem(**values)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture(scope="function")
def admin_user(db):
    return _create_identity(db, ADMIN_EMAIL, "Studio Admin")


@pytest.fixture(scope="function")
def client_user(db):
    return _create_identity(db, "client@example.com", "Client One")


@pytest.fixture(scope="function")
def other_client(db):
    return _create_identity(db, "other@example.com", "Client Two")


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(scope="function")
def client_headers(client_user):
    return headers_for(client_user)


@pytest.fixture(scope="function")
def other_headers(other_client):
    return headers_for(other_client)


@pytest.fixture(scope="function")
def pending_item(db, admin_user, client_user):
    return _create_item(db, admin_user, client_user)


@pytest.fixture(scope="function")
def make_identity(db):
    """Factory for extra identities."""
    def factory(email, full_name=None):
        return _create_identity(db, email, full_name)
    return factory


@pytest.fixture(scope="function")
def make_item(db):
    """Factory for content items; they are always stored as Pending."""
    def factory(creator, assignee, schedule_date=None, **overrides):
        return _create_item(db, creator, assignee, schedule_date, **overrides)
    return factory


@pytest.fixture(scope="function")
def auth_headers_for():
    """Bearer headers for any identity."""
    return headers_for

"""
Pytest configuration and fixtures for EventSync API tests.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from eventsync.auth import create_access_token, get_password_hash
from eventsync.database import Database, get_db
from eventsync.limiter import limiter
from eventsync.logging_config import get_logger
from eventsync.main import create_app
from eventsync.models.user import User
from eventsync.services import EventService, MessageService, RecipientService
from eventsync.types import utcnow

# Disable rate limiting for tests
limiter.enabled = False

TEST_PASSWORD = "testpassword123"

service_logger = get_logger("tests")


@pytest.fixture(scope="function")
def database():
    """Fresh in-memory database; StaticPool keeps every session on one connection."""
    database = Database("sqlite:///:memory:", poolclass=StaticPool).open()
    database.create_all()
    yield database
    database.drop_all()
    database.close()


@pytest.fixture(scope="function")
def db(database):
    """Session shared between the test body and every request."""
    session = database.session()
    yield session
    session.close()


@pytest.fixture(scope="function")
def app(database, db):
    app = create_app(database)

    def get_test_db():
        yield db

    app.dependency_overrides[get_db] = get_test_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


def make_user(db, email: str, password: str = TEST_PASSWORD, **fields) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=fields.get("first_name", "Test"),
        last_name=fields.get("last_name", "User"),
        company_name=fields.get("company_name", ""),
        is_active=fields.get("is_active", True),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


def future(days: int = 7):
    return utcnow() + timedelta(days=days)


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return make_user(db, "test@example.com")


@pytest.fixture(scope="function")
def other_user(db):
    """A second account for ownership checks."""
    return make_user(db, "other@example.com", first_name="Other")


@pytest.fixture(scope="function")
def auth_token(test_user):
    """Get an auth token for the test user."""
    return create_access_token({"sub": test_user.id, "email": test_user.email})


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def other_headers(other_user):
    return auth_headers_for(other_user)


@pytest.fixture(scope="function")
def event_service(db):
    return EventService(db, service_logger)


@pytest.fixture(scope="function")
def recipient_service(db):
    return RecipientService(db, service_logger)


@pytest.fixture(scope="function")
def message_service(db):
    return MessageService(db, service_logger)

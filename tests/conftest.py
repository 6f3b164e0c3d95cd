"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; point them at the test database first
os.environ.setdefault("DATABASE_URL", os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db"))

import pytest
from fastapi.testclient import TestClient

from testimonial_hub.api.dependencies import get_media_uploader
from testimonial_hub.database import Base, Database, get_db
from testimonial_hub.errors import UpstreamError
from testimonial_hub.main import app

# Use test database - PostgreSQL when TEST_DATABASE_URL is set, SQLite locally
SQLALCHEMY_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db")
test_database = Database(SQLALCHEMY_DATABASE_URL)

MEDIA_BASE_URL = "https://res.cloudinary.com/demo/video/upload"


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


class FakeUploader:
    """In-memory stand-in for the Cloudinary uploader."""

    def __init__(self):
        self.calls: list[dict] = []
        self.failures_remaining = 0

    async def upload(self, payload, key, filename="upload", content_type=None):
        self.calls.append(
            {"payload": payload, "key": key, "filename": filename, "content_type": content_type}
        )
        if self.failures_remaining:
            self.failures_remaining -= 1
            raise UpstreamError("Media upload failed")
        return f"{MEDIA_BASE_URL}/{key}"

    async def close(self):
        pass


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    test_database.create_all()
    yield
    test_database.dispose()


@pytest.fixture(scope="function", autouse=True)
def db(setup_test_database):
    """Create a fresh database session for each test with cleanup."""
    session = test_database.session()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def uploader():
    """Fake media uploader shared with the app under test."""
    return FakeUploader()


@pytest.fixture(scope="function")
def client(db, uploader):
    """Create a test client with database and media host overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_uploader] = lambda: uploader
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_and_login(client, email: str, password: str, name: str) -> AuthHeaders:
    response = client.post(
        "/register", json={"name": name, "email": email, "password": password}
    )
    assert response.status_code == 201
    user_id = response.json()["id"]

    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    token = response.json()["access_token"]
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id, email=email)


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    return register_and_login(client, "test@example.com", "testpass123", "Test User")

"""
Shared pytest fixtures.

Environment is set before anything from docunest is imported, because
settings are read once at import time.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["ENCRYPT_KEY"] = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from docunest.database import Base, get_db
from docunest.models import models  # noqa: F401
from docunest.storage.backend import LocalStorageBackend
from docunest.utils.auth import pwd_context
from docunest.utils.dependencies import get_storage

# Full-cost bcrypt makes the suite crawl; the algorithm is the same
pwd_context.update(bcrypt__rounds=4)

TEST_PASSWORD = "Secret123"


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageBackend(str(tmp_path / "blobs"))


@pytest.fixture
def client(session_factory, storage):
    from docunest.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def register_user(client, name: str, email: str, password: str = TEST_PASSWORD) -> dict:
    """Register a user and return auth headers."""
    response = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def alice(client):
    return register_user(client, "alice", "alice@example.com")


@pytest.fixture
def bob(client):
    return register_user(client, "bob", "bob@example.com")

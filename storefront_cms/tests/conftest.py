"""
Shared fixtures for storefront CMS tests.

Routes run against an in-memory SQLite database and a real ObjectStoreClient
whose boto3 client is a MagicMock.
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront_cms.auth import require_admin
from storefront_cms.config import StorageSettings
from storefront_cms.db import Base, get_db
from storefront_cms.deps import get_object_store
from storefront_cms.main import app
from storefront_cms.object_store import ObjectStoreClient

PUBLIC_BASE = "https://cdn.example.com"
BUCKET = "test-bucket"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def asset_url(key: str) -> str:
    return f"{PUBLIC_BASE}/{key}"


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage_config():
    return StorageSettings(
        region="us-east-1",
        bucket=BUCKET,
        access_key_id="test-key",
        secret_access_key="test-secret",
        public_base=PUBLIC_BASE,
        delete_timeout_ms=1000,
        delete_max_attempts=3,
        delete_backoff_ms=0,
        presign_expires_seconds=300,
    )


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.generate_presigned_url.return_value = f"https://{BUCKET}.s3.amazonaws.com/upload?signature=abc"
    return client


@pytest.fixture
def store(storage_config, s3_client):
    return ObjectStoreClient(storage_config, client=s3_client)


@pytest.fixture
def anon_client(db_session, store):
    """Client with the real auth guard in place."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client):
    """Client acting as an authenticated admin."""
    app.dependency_overrides[require_admin] = lambda: None
    return anon_client


@pytest.fixture
def no_storage(client):
    app.dependency_overrides[get_object_store] = lambda: None
    return client

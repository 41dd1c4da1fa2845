"""Shared fixtures: a temporary SQLite database and local blob storage."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from podcast_hosting.main import create_app
from podcast_hosting.models.database import Base, create_db_engine, create_session_factory
from podcast_hosting.services.repository import AudioRepository
from podcast_hosting.services.services import AudioService
from podcast_hosting.services.storage import LocalBlobStore
from podcast_hosting.settings import Settings

API_TOKEN = "secret-token"
API_USER = "admin@example.com"


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'podcasts.db'}")
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return AudioRepository(session_factory)


@pytest.fixture
def blob_root(tmp_path: Path) -> Path:
    return tmp_path / "blobs"


@pytest.fixture
def blob_store(blob_root):
    return LocalBlobStore(blob_root)


@pytest.fixture
def service(blob_store, repository):
    return AudioService(blob_store, repository)


@pytest.fixture
def settings(blob_root) -> Settings:
    return Settings(
        STORAGE_CONNECTION=str(blob_root),
        CHANNEL_TITLE="Audiobooks",
        CHANNEL_DESCRIPTION="Chapters read aloud",
        DATABASE_URL="sqlite://",
        API_TOKENS={API_TOKEN: API_USER},
    )


@pytest.fixture
def client(settings, service):
    app = create_app(settings=settings, service=service)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {API_TOKEN}"}

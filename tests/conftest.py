"""
Shared pytest fixtures for the collector tests
"""
import io
import zipfile

import pytest
from PIL import Image
from sqlalchemy.orm import sessionmaker

from config.database import build_engine, init_db
from config.settings import settings
from services.entity_store import EntityStore
from utils.file_handler import ensure_project_dirs, get_original_images_dir

# Constants for test data
TEST_IMAGE_WIDTH = 200
TEST_IMAGE_HEIGHT = 150
TEST_PRODUCT_NUMBER = "PN-1"


def make_image_bytes(width=TEST_IMAGE_WIDTH, height=TEST_IMAGE_HEIGHT, color=(255, 255, 255), fmt="PNG", mode="RGB"):
    """Encode a solid-colour image."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_zip_bytes(entries):
    """Build a zip archive from {name: bytes}; names ending in '/' become directories."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point project and reference-data directories at a temp dir."""
    projects_dir = tmp_path / "projects"
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(settings, "PROJECTS_DIR", str(projects_dir))
    monkeypatch.setattr(settings, "DATA_DIR", str(data_dir))
    return projects_dir


@pytest.fixture
def session_factory():
    """Fresh in-memory store per test."""
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def collection_session(db):
    """A session with its directory tree on disk."""
    session = EntityStore.create_session(db, TEST_PRODUCT_NUMBER)
    ensure_project_dirs(session.product_number)
    return session


@pytest.fixture
def stored_image(db, collection_session):
    """A registered image whose original bytes exist on disk."""
    file_name = "1700000000000-abcd1234-photo.png"
    file_path = get_original_images_dir(collection_session.product_number) / file_name
    file_path.write_bytes(make_image_bytes())
    return EntityStore.save_image(
        db,
        session_id=collection_session.id,
        original_name="photo.png",
        file_name=file_name,
        file_path=str(file_path),
    )


@pytest.fixture
def client(session_factory):
    """API client bound to the per-test store."""
    from fastapi.testclient import TestClient

    from config.database import get_db
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

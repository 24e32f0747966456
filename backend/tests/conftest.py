"""
Tubed test suite - shared fixtures.

Every test gets its own SQLite file and storage root under tmp_path.

Run:  pytest -v
"""

import io

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from PIL import Image

from tubed.config import Settings
from tubed.database import build_engine
from tubed.main import create_app
from tubed.services.file_service import FileService
from tubed.services.file_storage import FileStorageService
from tubed.services.metadata_store import MetadataStore

ACCESS_CODE = "open-sesame"


def _make_image(width: int = 64, height: int = 48, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    """Solid-colour test image encoded in ``fmt``."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color + (255,) if mode == "RGBA" else color
    buffer = io.BytesIO()
    Image.new(mode, (width, height), fill).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'data' / 'tubed.db'}",
        STORAGE_ROOT=str(tmp_path / "public" / "uploads"),
        AUTH_CODE=ACCESS_CODE,
        JWT_SECRET="test-secret",
        LOG_LEVEL="DEBUG",
        _env_file=None,
    )


@pytest.fixture
def client(settings):
    """TestClient with lifespan run, so the schema exists."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"x-auth-code": ACCESS_CODE}


@pytest.fixture
def storage(settings):
    return FileStorageService(settings.STORAGE_ROOT, settings.PUBLIC_URL_PREFIX)


@pytest_asyncio.fixture
async def store(settings):
    metadata_store = MetadataStore(build_engine(settings.DATABASE_URL))
    await metadata_store.create_schema()
    yield metadata_store
    await metadata_store.dispose()


@pytest.fixture
def file_service(store, storage):
    return FileService(store, storage)


@pytest.fixture
def make_image():
    return _make_image


@pytest.fixture
def upload(client, auth_headers):
    """POST (name, bytes, mime) tuples to /api/upload."""
    def _upload(*files):
        multipart = [("files", (name, data, mime)) for name, data, mime in files]
        return client.post("/api/upload", files=multipart, headers=auth_headers)
    return _upload

"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from familyshare.client import FileShareClient
from familyshare.main import app
from familyshare.storage import LocalDiskStore, reset_store, set_store


@pytest.fixture
def upload_dir(tmp_path):
    """Upload directory that does not exist until the first upload."""
    return tmp_path / "public" / "uploads"


@pytest.fixture
def store(upload_dir):
    """Point the global store at a temporary directory."""
    local_store = LocalDiskStore(str(upload_dir))
    set_store(local_store)
    yield local_store
    reset_store()


@pytest.fixture
def api_client(store):
    """Provide a TestClient for the main FastAPI app backed by a temp store."""
    return TestClient(app)


@pytest.fixture
def share_client(api_client):
    """FileShareClient that talks to the app in-process."""
    return FileShareClient(http=api_client)

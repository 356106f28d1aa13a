import pytest
from fastapi.testclient import TestClient

from directory_api import config
from directory_api.database import init_db
from directory_api.main import app
from directory_api.storage import DatabaseStorage


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Every test gets its own SQLite file and cheap password hashing."""
    db_path = tmp_path / "directory.db"
    monkeypatch.setattr(config, "DB_PATH", str(db_path))
    monkeypatch.setattr(config, "PASSWORD_HASH_ITERATIONS", 1000)
    return db_path


@pytest.fixture
def store():
    init_db()
    return DatabaseStorage()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_establishment(client):
    def _make(**overrides):
        body = {"name": "Corner Bistro", "category": "Restaurant", "location": "Downtown", "rating": "4"}
        body.update(overrides)
        resp = client.post("/api/establishments", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def make_attachment(client):
    def _make(establishment_id, **overrides):
        body = {
            "fileName": "menu.pdf",
            "fileType": "application/pdf",
            "fileSize": "0.12 MB",
            "filePath": "https://files.example.com/menu.pdf",
            "establishmentId": establishment_id,
        }
        body.update(overrides)
        resp = client.post("/api/attachments", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


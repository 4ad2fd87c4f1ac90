import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from ecofinds.app import create_app
from ecofinds.config import Settings


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        secret_key="test-secret",
        db_path=tmp_path / "data" / "ecofinds.sqlite",
        token_ttl_seconds=3600,
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_user(client):
    """Sign up and log in a user; returns (user dict, auth headers)."""

    def _make(email: str, username: str, password: str = "secret1"):
        r = client.post("/api/auth/signup", json={"email": email, "username": username, "password": password})
        assert r.status_code == 201, r.text
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        body = r.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _make

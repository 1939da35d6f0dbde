import os
import tempfile
from pathlib import Path

# Configure env BEFORE importing the app
_TMP = Path(tempfile.mkdtemp(prefix="keyward-tests-"))
DB_PATH = _TMP / "test.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["WALLET_KEY_SIZE"] = "2048"
os.environ["TRANSPORT_KEY_SIZE"] = "2048"
os.environ["CORS_ORIGINS"] = ""

import pytest
from fastapi.testclient import TestClient

from backend.app.main import app
from backend.app.security.jwt import create_access_token
from client.transport import encrypt_for_transport

PASSWORD = "Abc12345!"


@pytest.fixture
def api():
    # NullPool: no connection outlives a request, so the file can go
    if DB_PATH.exists():
        DB_PATH.unlink()
    with TestClient(app) as c:
        yield c


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
def token():
    def _token(sub="user-1"):
        return create_access_token({"sub": sub, "email": f"{sub}@example.com", "provider": "google"})
    return _token


@pytest.fixture
def auth_headers(token):
    def _headers(sub="user-1", **extra):
        return {"Authorization": f"Bearer {token(sub)}", **extra}
    return _headers


@pytest.fixture
def seal(api):
    pem = api.get("/public-key").json()["publicKey"]

    def _seal(value, now=None):
        return encrypt_for_transport(value, pem, now)
    return _seal


@pytest.fixture
def create_wallet(api, auth_headers, seal):
    def _create(sub="user-1", pw=PASSWORD):
        response = api.post("/wallets", headers=auth_headers(
            sub,
            **{"encrypted-password": seal(pw), "encrypted-confirm-password": seal(pw)},
        ))
        assert response.status_code == 201, response.text
        return response.json()
    return _create

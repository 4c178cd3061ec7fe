"""
Shared fixtures: an in-memory MongoDB (mongomock), a fake auth service and
a TestClient wired to both through FastAPI dependency overrides.
"""
import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

import main
from auth import User
from database import ContentStore
from errors import AuthError

PASSWORD = "correct horse"


class FakeAuthenticator:
    """Accepts any email with PASSWORD, or raises `error` when set."""

    def __init__(self):
        self.error = None
        self.calls = []

    def sign_in(self, email, password):
        self.calls.append(email)
        if self.error is not None:
            raise self.error
        if password != PASSWORD:
            raise AuthError(AuthError.INVALID_CREDENTIALS, "INVALID_LOGIN_CREDENTIALS")
        return User(uid="op-1", email=email, id_token="id-token")


class _DownCollection:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise ServerSelectionTimeoutError("store unreachable")
        return fail


class DownDatabase:
    """Looks like a pymongo Database whose every call times out."""

    def __getitem__(self, name):
        return _DownCollection()

    def list_collection_names(self):
        raise ServerSelectionTimeoutError("store unreachable")


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["club_site_test"]


@pytest.fixture
def store(mongo_db):
    return ContentStore(mongo_db)


@pytest.fixture
def down_store():
    return ContentStore(DownDatabase())


@pytest.fixture
def authenticator():
    return FakeAuthenticator()


@pytest.fixture
def client(store, authenticator):
    main.app.dependency_overrides[main.get_optional_store] = lambda: store
    main.app.dependency_overrides[main.get_authenticator] = lambda: authenticator
    main.app.state.sessions.clear()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
    main.app.state.sessions.clear()


@pytest.fixture
def admin_headers(client):
    response = client.post("/admin/login", json={"email": "coach@example.com", "password": PASSWORD})
    assert response.status_code == 200
    return {"X-Admin-Session": response.json()["token"]}

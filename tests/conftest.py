"""
Shared pytest fixtures.

The API runs against a SQLite file so no Postgres is required for tests.
The device client runs against an in-memory SQLite key/value store and
talks to the API through TestClient (which is an httpx.Client).
"""
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_registro.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from registro.db.base import Base, get_db
from registro.main import app
from registro.client.api import RemoteStore, RemoteStoreError
from registro.client.connectivity import StaticConnectivity
from registro.client.service import StorageService
from registro.client.storage import KeyValueStore, LocalStore

SQLITE_URL = "sqlite:///./test_registro.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def usuario():
    """A fresh user id so tests sharing the DB file never see each other's days."""
    return f"user_test_{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Device client
# ---------------------------------------------------------------------------

class FakeRemote:
    """In-process stand-in for RemoteStore with failure injection."""

    def __init__(self, fail_dates=(), fail_fetch=False):
        self.fail_dates = set(fail_dates)
        self.fail_fetch = fail_fetch
        self.days: dict[str, dict] = {}
        self.pushed: list[str] = []
        self.on_push = None

    def push_snapshot(self, usuario_id, fecha, burbujas, conexiones):
        fecha = str(fecha)
        if fecha in self.fail_dates:
            raise RemoteStoreError(f"push {fecha} failed", status_code=503)
        self.pushed.append(fecha)
        self.days[fecha] = {"burbujas": burbujas, "conexiones": conexiones}
        if self.on_push is not None:
            self.on_push(fecha)
        return {"usuario_id": usuario_id, "fecha": fecha, **self.days[fecha]}

    def fetch_day(self, usuario_id, fecha):
        if self.fail_fetch:
            raise RemoteStoreError("fetch failed", status_code=503)
        return self.days.get(str(fecha), {"burbujas": [], "conexiones": []})

    def fetch_history(self, usuario_id):
        raise RemoteStoreError("history unavailable")

    def fetch_statistics(self, usuario_id, dias=7):
        raise RemoteStoreError("stats unavailable")

    def export_all(self, usuario_id):
        raise RemoteStoreError("export unavailable")


@pytest.fixture()
def local_store():
    return LocalStore(KeyValueStore.from_url("sqlite://"))


@pytest.fixture()
def connectivity():
    return StaticConnectivity(True)


@pytest.fixture()
def remote(client):
    return RemoteStore(client, api_prefix="/api")


@pytest.fixture()
def fake_remote():
    return FakeRemote()


@pytest.fixture()
def service(local_store, remote, connectivity):
    """StorageService wired to the real API."""
    return StorageService(local_store, remote, connectivity).initialize()


@pytest.fixture()
def fake_service(local_store, fake_remote, connectivity):
    """StorageService wired to FakeRemote."""
    return StorageService(local_store, fake_remote, connectivity).initialize()

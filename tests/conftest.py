from typing import Generator
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blockauth.db import Base, enable_sqlite_foreign_keys
from blockauth.main import app
from blockauth.stores import MemoryStore, SqlStore, get_store


@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def sql_store(db_session):
    return SqlStore(db_session)


@pytest.fixture(scope="function")
def memory_store():
    return MemoryStore()


@pytest.fixture(params=["sql", "memory"])
def store(request, db_session):
    # crud must behave the same on both backends
    if request.param == "sql":
        return SqlStore(db_session)
    return MemoryStore()


@pytest.fixture(scope="function")
def client(sql_store):
    # Override dependency to use the same store
    def override_get_store():
        yield sql_store
    app.dependency_overrides[get_store] = override_get_store
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register a user and log in; returns (user, auth headers)."""
    def _signup(name, role, email=None, password="secret123"):
        email = email or f"{name.lower()}@example.com"
        r = client.post("/api/users/register", json={"name": name, "email": email, "password": password, "role": role})
        assert r.status_code == 201, r.text
        r = client.post("/api/users/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return r.json()["user"], {"Authorization": f"Bearer {r.json()['token']}"}
    return _signup

import os

# Must be set before anonbox reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IDENTITY_SALT"] = "test-salt"

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import anonbox.models  # noqa: E402,F401
from anonbox.core.identity import hash_sender_address  # noqa: E402
from anonbox.core.message import store_message  # noqa: E402
from anonbox.core.throttle import limiter  # noqa: E402
from anonbox.core.user import register_user  # noqa: E402
from anonbox.infra.postgres import get_db  # noqa: E402
from anonbox.main import app  # noqa: E402
from anonbox.models.base import Base  # noqa: E402

NOW = datetime(2026, 3, 14, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def alice(db):
    user, _ = register_user(db, "alice")
    return user


@pytest.fixture
def bob(db):
    user, _ = register_user(db, "bob")
    return user


@pytest.fixture
def seed_messages(db):
    """seed_messages(recipient, address, [datetimes]) -> list of stored messages"""
    def _seed(recipient, address, timestamps):
        identity = hash_sender_address(address)
        stored = [
            store_message(db, recipient.id, identity, f"hello {i}", created_at=ts)
            for i, ts in enumerate(timestamps)
        ]
        db.commit()
        return stored
    return _seed


def register(client, username):
    """Register through the API and return (user_id, auth headers)."""
    resp = client.post("/users/register", json={"username": username})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user_id"], {"Authorization": f"Bearer {body['token']}"}

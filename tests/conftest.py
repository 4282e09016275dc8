# tests/conftest.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskmanager import auth, lists
from taskmanager.database import Base, make_engine
from taskmanager.dependencies import get_clock, get_db, get_password_hasher, get_token_service
from taskmanager.main import app
from taskmanager.passwords import PasswordHasher
from taskmanager.tokens import TokenService

from .fakes import SECRET, FixedClock


@pytest.fixture()
def engine():
    # one shared in-memory connection so every session sees the same data
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def tokens(clock) -> TokenService:
    return TokenService(SECRET, clock)


@pytest.fixture()
def hasher() -> PasswordHasher:
    # minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture()
def alice(db, hasher):
    return auth.register_user(db, hasher, "alice", "alice@x.com", "pw123456")


@pytest.fixture()
def bob(db, hasher):
    return auth.register_user(db, hasher, "bob", "bob@x.com", "secret-pw")


@pytest.fixture()
def alice_default_list(db, alice):
    return lists.get_default_list(db, alice.id)


@pytest.fixture()
def client(session_factory, clock, tokens, hasher):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_token_service] = lambda: tokens
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


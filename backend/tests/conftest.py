from __future__ import annotations

import os

os.environ.setdefault("DB_DRIVER", "sqlite")
os.environ.setdefault("DB_NAME", ":memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_TO_CONSOLE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from store_ratings.auth.jwt_handler import create_access_token
from store_ratings.database import enable_sqlite_savepoints, get_db
from store_ratings.enums.user import UserRole
from store_ratings.main import app
from store_ratings.models.base import Base
from store_ratings.models.store import Store
from store_ratings.models.user import User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.USER, name: str = "Regular Platform User Name") -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=f"{role.value}{counter['n']}@example.com",
            password_hash="not-a-real-hash",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_store(db):
    counter = {"n": 0}

    def _make(owner: User) -> Store:
        counter["n"] += 1
        store = Store(
            name=f"Neighbourhood Corner Store {counter['n']}",
            email=f"store{counter['n']}@example.com",
            owner_id=owner.id,
        )
        db.add(store)
        db.commit()
        db.refresh(store)
        return store

    return _make


@pytest.fixture
def owner(make_user):
    return make_user(UserRole.STORE_OWNER)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def alice(make_user):
    return make_user()


@pytest.fixture
def bob(make_user):
    return make_user()


@pytest.fixture
def store(make_store, owner):
    return make_store(owner)


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()

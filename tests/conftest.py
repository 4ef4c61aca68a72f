import os

# Configuration is read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from auth import create_access_token
from database import Base, build_engine, get_db
from main import app
from models.user import UserRole
from services.accounts import create_account, grant_role


@pytest.fixture(scope="function")
def engine(tmp_path):
    """A fresh SQLite database per test."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Create an account holding ``role`` and return (user, auth headers)."""
    def _make_user(email: str, role: UserRole = None, password: str = "secret123"):
        user = create_account(db_session, email, password)
        if role is not None:
            grant_role(db_session, user, role)
        token = create_access_token({"sub": user.email})
        return user, {"Authorization": f"Bearer {token}"}
    return _make_user


@pytest.fixture
def admin_headers(make_user):
    _, headers = make_user("admin@mysticvastra.test", UserRole.ADMIN)
    return headers


@pytest.fixture
def super_admin_headers(make_user):
    _, headers = make_user("owner@mysticvastra.test", UserRole.SUPER_ADMIN)
    return headers

import os

# Must be set before the app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cleancity.app import app
from cleancity.core.config import settings
from cleancity.core.credentials import create_admin, register_user
from cleancity.core.reports import create_report
from cleancity.core.security import create_access_token
from cleancity.db import create_tables, get_db


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def blob_dir(tmp_path, monkeypatch):
    path = tmp_path / "images"
    monkeypatch.setattr(settings, "blob_storage_dir", str(path))
    return path


@pytest.fixture
def api_app(session_factory, blob_dir):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_app):
    return TestClient(api_app)


@pytest.fixture
def alice(db_session):
    return register_user(db_session, "Alice", "alice@x.com", "secret1")


@pytest.fixture
def bob(db_session):
    return register_user(db_session, "Bob", "bob@x.com", "secret2")


@pytest.fixture
def admin(db_session):
    return create_admin(db_session, "Admin User", "admin@cleancity.com", "password123")


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return _headers


@pytest.fixture
def make_report(db_session):
    def _make(owner, title="Overflowing bin", description="Bin has not been emptied",
              category="waste", location="Main Street", image_url=None):
        return create_report(
            db_session,
            owner_id=owner.id,
            title=title,
            description=description,
            category=category,
            location=location,
            image_url=image_url,
        )
    return _make

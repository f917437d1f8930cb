import io
import sys

import pytest

from cleancity.core.credentials import authenticate, register_user
from cleancity.models.user import User, UserRole
from create_admin import create_admin_user


@pytest.fixture
def admin_env(monkeypatch):
    monkeypatch.setenv("ADMIN_NAME", "Admin User")
    monkeypatch.setenv("ADMIN_EMAIL", "Admin@CleanCity.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "password123")


def test_creates_admin_from_environment(admin_env, session_factory, db_session):
    admin = create_admin_user(session_factory=session_factory)

    assert admin.role is UserRole.ADMIN
    assert admin.email == "admin@cleancity.com"
    assert authenticate(db_session, "admin@cleancity.com", "password123").id == admin.id


def test_second_run_returns_existing_admin(admin_env, session_factory, db_session, monkeypatch):
    first = create_admin_user(session_factory=session_factory)
    monkeypatch.setenv("ADMIN_EMAIL", "other-admin@cleancity.com")

    second = create_admin_user(session_factory=session_factory)

    assert second.id == first.id
    assert db_session.query(User).filter(User.role == UserRole.ADMIN).count() == 1


def test_email_taken_by_citizen(admin_env, session_factory, db_session):
    register_user(db_session, "Citizen", "admin@cleancity.com", "secret1")

    assert create_admin_user(session_factory=session_factory) is None
    assert db_session.query(User).filter(User.role == UserRole.ADMIN).count() == 0


def test_missing_environment_without_terminal_exits(session_factory, monkeypatch):
    for name in ("ADMIN_NAME", "ADMIN_EMAIL", "ADMIN_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(sys, "stdin", io.StringIO())

    with pytest.raises(SystemExit):
        create_admin_user(session_factory=session_factory)

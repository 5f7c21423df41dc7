"""Shared fixtures: a throwaway SQLite file per test and signed-in sessions."""

from datetime import date

import pytest

import auth
import config
import db
from models import Duration, Membership, MembershipStatus


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Cheap bcrypt rounds and no stray .env values."""
    monkeypatch.setenv("MEMBERSHIP_BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("MEMBERSHIP_DB_PATH", raising=False)
    monkeypatch.delenv("MEMBERSHIP_EXPIRY_WARNING_DAYS", raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.fixture
def database(tmp_path):
    path = tmp_path / "membership.db"
    db.init_db(path)
    yield path


@pytest.fixture
def admin_session(database):
    user = auth.sign_up("admin@fitclub.org", "First Admin", "secret123")
    return auth.Session.for_user(user)


@pytest.fixture
def user_session(admin_session):
    user = auth.sign_up("viewer@fitclub.org", "Plain User", "secret123")
    return auth.Session.for_user(user)


def make_membership(**overrides) -> Membership:
    fields = dict(
        id=1,
        membership_number="MEM000001",
        member_name="Jane Doe",
        email="jane@fitclub.org",
        phone="0123456789",
        address="1 Main Street",
        duration=Duration.one_year,
        status=MembershipStatus.active,
        start_date=date(2024, 1, 1),
        end_date=date(2025, 1, 1),
    )
    fields.update(overrides)
    return Membership(**fields)


@pytest.fixture
def membership_factory():
    return make_membership

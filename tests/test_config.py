"""Settings loaded from the environment."""

from pathlib import Path

import pytest

import config
from errors import InvalidInput


def test_defaults(monkeypatch):
    monkeypatch.delenv("MEMBERSHIP_BCRYPT_ROUNDS", raising=False)
    monkeypatch.delenv("MEMBERSHIP_LOG_LEVEL", raising=False)
    settings = config.load_settings()
    assert settings.db_path == config.DEFAULT_DB_FILE
    assert settings.expiry_warning_days == 7
    assert settings.bcrypt_rounds == 12
    assert settings.log_level == "INFO"


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MEMBERSHIP_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("MEMBERSHIP_EXPIRY_WARNING_DAYS", "14")
    monkeypatch.setenv("MEMBERSHIP_LOG_LEVEL", "debug")
    settings = config.load_settings()
    assert settings.db_path == Path(tmp_path / "x.db")
    assert settings.expiry_warning_days == 14
    assert settings.bcrypt_rounds == 4
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("name,value", [
    ("MEMBERSHIP_EXPIRY_WARNING_DAYS", "soon"),
    ("MEMBERSHIP_EXPIRY_WARNING_DAYS", "-1"),
    ("MEMBERSHIP_BCRYPT_ROUNDS", "3"),
])
def test_bad_integers(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(InvalidInput):
        config.load_settings()


def test_get_settings_is_cached():
    assert config.get_settings() is config.get_settings()

"""Tests for settings loading."""

from baseplate.config import DatabaseSettings, Settings


def test_database_settings_from_mapping():
    settings = Settings(_env_file=None, db={"url": "sqlite+aiosqlite:///./mapped.db", "pool_size": 2})
    assert settings.db.url == "sqlite+aiosqlite:///./mapped.db"
    assert settings.db.pool_size == 2


def test_database_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DB_URL", "sqlite+aiosqlite:///./env.db")
    monkeypatch.setenv("DB_ECHO", "true")
    settings = Settings(_env_file=None)
    assert settings.db.url == "sqlite+aiosqlite:///./env.db"
    assert settings.db.echo is True


def test_database_settings_instance_is_kept():
    db = DatabaseSettings(url="sqlite+aiosqlite://", max_overflow=0)
    assert Settings(_env_file=None, db=db).db.max_overflow == 0

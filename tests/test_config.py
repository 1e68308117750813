"""
Tests for settings, logging set-up and database URL handling.
"""

import structlog

from editorial_desk.config import Settings, configure_logging, get_settings
from editorial_desk.db.base import create_db_engine, get_database_url


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        config = Settings(_env_file=None)

        assert config.app_name == "Editorial Desk"
        assert config.database_url.startswith("sqlite")
        assert config.log_format == "json"
        assert config.default_page_size == 15

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("DEFAULT_PAGE_SIZE", "50")

        config = Settings(_env_file=None)

        assert config.log_level == "DEBUG"
        assert config.default_page_size == 50

    def test_get_settings_is_singleton(self):
        assert get_settings() is get_settings()


class TestLogging:
    def test_configure_console_logging(self):
        configure_logging(Settings(_env_file=None, log_format="console"))
        structlog.get_logger().info("test_event", key="value")

    def test_unknown_level_falls_back(self):
        configure_logging(Settings(_env_file=None, log_level="NOPE"))
        structlog.get_logger().info("still_logs")


class TestDatabaseUrl:
    def test_async_postgres_driver_is_rewritten(self):
        url = get_database_url("postgresql+asyncpg://u:secret@db/editorial")
        assert url == "postgresql+psycopg://u:secret@db/editorial"

    def test_async_sqlite_driver_is_rewritten(self):
        assert get_database_url("sqlite+aiosqlite:///./x.db") == "sqlite:///./x.db"

    def test_environment_variable_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///./from-env.db")
        assert get_database_url() == "sqlite:///./from-env.db"

    def test_sqlite_engine(self):
        engine = create_db_engine("sqlite:///:memory:")
        assert engine.dialect.name == "sqlite"
        engine.dispose()

"""Tests for connection configuration."""
import dataclasses

import pytest

from pgconnect import Config, LogLevel, default_config


class TestDefaults:

    def test_default_values(self):
        config = default_config()
        assert config.host == "localhost"
        assert config.port == "5432"
        assert config.user == "postgres"
        assert config.password == "postgres"
        assert config.database == "postgres"
        assert config.ssl_mode == "disable"
        assert config.timezone == "UTC"
        assert config.max_idle_conns == 10
        assert config.max_open_conns == 100
        assert config.log_level is LogLevel.SILENT

    def test_config_is_frozen(self):
        config = default_config()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.host = "elsewhere"

    def test_dsn_key_order(self):
        assert default_config().dsn() == (
            "host=localhost port=5432 user=postgres password=postgres "
            "dbname=postgres sslmode=disable TimeZone=UTC"
        )


class TestUrl:

    def test_postgres_url(self):
        url = Config(host="db.internal", port="6543", database="shop").url()
        assert url.drivername == "postgresql+asyncpg"
        assert url.host == "db.internal"
        assert url.port == 6543
        assert url.database == "shop"
        assert url.username == "postgres"

    def test_sqlite_url_uses_database_as_path(self):
        url = Config(driver="sqlite+aiosqlite", database="/tmp/app.db").url()
        assert url.drivername == "sqlite+aiosqlite"
        assert url.database == "/tmp/app.db"
        assert url.host is None

    def test_asyncpg_connect_args(self):
        args = Config(ssl_mode="require", timezone="Europe/Paris").connect_args()
        assert args == {"ssl": "require", "server_settings": {"timezone": "Europe/Paris"}}

    def test_sqlite_has_no_connect_args(self):
        assert Config(driver="sqlite+aiosqlite").connect_args() == {}


class TestPoolOptions:

    def test_defaults(self):
        assert default_config().pool_options() == {"pool_size": 10, "max_overflow": 90}

    @pytest.mark.parametrize("idle,open_,expected", [
        (2, 1, {"pool_size": 1, "max_overflow": 0}),
        (5, 5, {"pool_size": 5, "max_overflow": 0}),
        (0, 4, {"pool_size": 1, "max_overflow": 3}),
    ])
    def test_open_limit_is_a_ceiling(self, idle, open_, expected):
        config = Config(max_idle_conns=idle, max_open_conns=open_)
        assert config.pool_options() == expected

    def test_non_positive_open_limit_is_unlimited(self):
        assert Config(max_idle_conns=3, max_open_conns=0).pool_options() == {
            "pool_size": 3,
            "max_overflow": -1,
        }


class TestFromEnv:

    def test_unset_variables_keep_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "NAME", "LOG_LEVEL", "MAX_IDLE_CONNS"):
            monkeypatch.delenv(f"DB_{name}", raising=False)
        config = Config.from_env()
        assert config.host == "localhost"
        assert config.max_idle_conns == 10

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("APP_DB_HOST", "pg.example.com")
        monkeypatch.setenv("APP_DB_PORT", "5433")
        monkeypatch.setenv("APP_DB_NAME", "orders")
        monkeypatch.setenv("APP_DB_MAX_OPEN_CONNS", "25")
        monkeypatch.setenv("APP_DB_LOG_LEVEL", "info")

        config = Config.from_env(prefix="APP_DB_")

        assert config.host == "pg.example.com"
        assert config.port == "5433"
        assert config.database == "orders"
        assert config.max_open_conns == 25
        assert config.log_level is LogLevel.INFO


def test_log_levels_map_to_logging():
    import logging

    assert LogLevel.ERROR.logging_level == logging.ERROR
    assert LogLevel.WARN.logging_level == logging.WARNING
    assert LogLevel.SILENT.logging_level > logging.CRITICAL

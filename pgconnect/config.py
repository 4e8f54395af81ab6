"""Connection settings for pgconnect databases."""

import enum
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict

from dotenv import load_dotenv  # Load variables from a .env file.
from sqlalchemy.engine import URL


class LogLevel(enum.IntEnum):
    """How chatty SQLAlchemy should be about the statements it runs."""

    SILENT = 1
    ERROR = 2
    WARN = 3
    INFO = 4

    @property
    def logging_level(self) -> int:
        return {
            LogLevel.SILENT: logging.CRITICAL + 10,
            LogLevel.ERROR: logging.ERROR,
            LogLevel.WARN: logging.WARNING,
            LogLevel.INFO: logging.INFO,
        }[self]


@dataclass(frozen=True)
class Config:
    """Database connection configuration.

    Every field has a default, so ``Config()`` connects to a stock local
    PostgreSQL. Values are not validated here; the driver rejects bad ones
    when the connection is opened.
    """

    host: str = "localhost"
    port: str = "5432"
    user: str = "postgres"
    password: str = "postgres"
    database: str = "postgres"
    ssl_mode: str = "disable"
    timezone: str = "UTC"
    max_idle_conns: int = 10
    max_open_conns: int = 100
    log_level: LogLevel = LogLevel.SILENT
    driver: str = "postgresql+asyncpg"

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")

    def dsn(self) -> str:
        """Return the libpq keyword/value connection string."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.database} "
            f"sslmode={self.ssl_mode} TimeZone={self.timezone}"
        )

    def url(self) -> URL:
        """Return the SQLAlchemy URL for ``driver``."""
        if self.is_sqlite:
            # SQLite only needs a file path.
            return URL.create(self.driver, database=self.database)
        return URL.create(
            self.driver,
            username=self.user,
            password=self.password,
            host=self.host,
            port=int(self.port),
            database=self.database,
        )

    def connect_args(self) -> Dict[str, Any]:
        if self.driver.endswith("+asyncpg"):
            # asyncpg takes sslmode names directly and sets TimeZone per session.
            return {
                "ssl": self.ssl_mode,
                "server_settings": {"timezone": self.timezone},
            }
        return {}

    def pool_options(self) -> Dict[str, int]:
        """Return ``pool_size``/``max_overflow`` for the engine's queue pool.

        The idle limit is clamped to the open limit, so at most
        ``max_open_conns`` connections are ever open. ``max_open_conns <= 0``
        means no ceiling. The pool always keeps at least one idle connection,
        because ``pool_size=0`` would remove its limit.
        """
        if self.max_open_conns <= 0:
            return {"pool_size": max(self.max_idle_conns, 1), "max_overflow": -1}
        pool_size = max(min(self.max_idle_conns, self.max_open_conns), 1)
        return {"pool_size": pool_size, "max_overflow": self.max_open_conns - pool_size}

    @classmethod
    def from_env(cls, prefix: str = "DB_") -> "Config":
        """Create config from environment variables (and a .env file).

        Environment variables (with the default prefix):
            DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME,
            DB_SSLMODE, DB_TIMEZONE, DB_MAX_IDLE_CONNS, DB_MAX_OPEN_CONNS,
            DB_LOG_LEVEL (silent/error/warn/info), DB_DRIVER

        Unset variables keep the defaults from ``default_config()``.
        """
        load_dotenv()
        defaults = cls()

        def env(name: str, default: Any) -> str:
            return os.getenv(f"{prefix}{name}", str(default))

        return cls(
            host=env("HOST", defaults.host),
            port=env("PORT", defaults.port),
            user=env("USER", defaults.user),
            password=env("PASSWORD", defaults.password),
            database=env("NAME", defaults.database),
            ssl_mode=env("SSLMODE", defaults.ssl_mode),
            timezone=env("TIMEZONE", defaults.timezone),
            max_idle_conns=int(env("MAX_IDLE_CONNS", defaults.max_idle_conns)),
            max_open_conns=int(env("MAX_OPEN_CONNS", defaults.max_open_conns)),
            log_level=LogLevel[env("LOG_LEVEL", defaults.log_level.name).upper()],
            driver=env("DRIVER", defaults.driver),
        )


def default_config() -> Config:
    """Return a Config with the documented defaults."""
    return Config()

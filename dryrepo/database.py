"""데이터베이스 엔진 및 세션 설정 모듈.

Database engine and session configuration module.
Resolves the database driver once from the connection URL, builds the async
SQLAlchemy engine and session factory, and provides the ORM base class for
caller models.
"""

import enum
import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dryrepo.config import Settings, settings, settings_from_mapping
from dryrepo.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Driver(enum.Enum):
    """지원하는 데이터베이스 드라이버.

    Supported database backends, each bound to its async DBAPI.
    """

    MYSQL = "mysql"
    POSTGRES = "postgresql"
    SQLITE = "sqlite"

    @property
    def async_driver(self) -> str:
        return _ASYNC_DRIVERS[self]

    @classmethod
    def from_url(cls, url: str | URL) -> "Driver":
        """연결 URL에서 드라이버를 결정합니다.

        Resolve the backend from a connection URL such as
        ``postgresql+asyncpg://...`` or ``sqlite:///app.db``.

        Raises:
            ConfigurationError: 지원하지 않는 백엔드 (Unknown backend)
        """
        try:
            backend = make_url(url).get_backend_name()
        except ArgumentError as exc:
            raise ConfigurationError(f"Invalid database URL: {exc}") from exc

        try:
            return cls(backend)
        except ValueError:
            raise ConfigurationError(f"Unknown database driver {backend!r}") from None

    def async_url(self, url: str | URL) -> URL:
        """URL의 드라이버를 비동기 드라이버로 맞춥니다 (Force the async DBAPI)."""
        return make_url(url).set(drivername=f"{self.value}+{self.async_driver}")


_ASYNC_DRIVERS: dict[Driver, str] = {
    Driver.MYSQL: "aiomysql",
    Driver.POSTGRES: "asyncpg",
    Driver.SQLITE: "aiosqlite",
}


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for caller models.
    """

    pass


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """SQLite에서 SAVEPOINT가 동작하도록 BEGIN을 직접 발행합니다.

    The sqlite DBAPI manages BEGIN itself, which breaks SAVEPOINT; hand
    transaction control to SQLAlchemy instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_engine_from_settings(config: Settings | None = None) -> AsyncEngine:
    """설정으로부터 비동기 엔진을 생성합니다.

    Build the async engine. Pool options apply to server databases only;
    PostgreSQL gets its prepared statement cache size from settings and
    SQLite gets savepoint support.

    Args:
        config: 데이터베이스 설정, None이면 전역 설정 사용
                (Database settings; None uses the global settings)

    Returns:
        AsyncEngine: 비동기 데이터베이스 엔진 (Async database engine)
    """
    config = config or settings
    driver = Driver.from_url(config.DATABASE_URL)
    url = driver.async_url(config.DATABASE_URL)

    kwargs: dict[str, Any] = {"echo": config.DEBUG}
    if driver is not Driver.SQLITE:
        kwargs.update(
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE,
            pool_pre_ping=config.DB_POOL_PRE_PING,
        )
    if driver is Driver.POSTGRES:
        kwargs["connect_args"] = {"statement_cache_size": config.DB_STATEMENT_CACHE_SIZE}

    engine: AsyncEngine = create_async_engine(url, **kwargs)
    if driver is Driver.SQLITE:
        _enable_sqlite_savepoints(engine)

    logger.debug("created %s engine for %s", driver.value, url.render_as_string(hide_password=True))
    return engine


def one_off_engine(driver: Driver, dsn: str) -> AsyncEngine:
    """일회성 디버그 엔진을 생성합니다.

    Build a throwaway engine with SQL echo enabled, e.g. for scripts.

    Args:
        driver: 데이터베이스 드라이버 (Database driver)
        dsn: 드라이버 접두사를 제외한 연결 문자열 또는 전체 URL
             (Connection string without scheme, or a full URL)

    Raises:
        ConfigurationError: dsn이 비어 있을 때 (Empty dsn)
    """
    if not dsn:
        raise ConfigurationError("dsn is empty")

    url = dsn if "://" in dsn else f"{driver.value}://{dsn}"
    if Driver.from_url(url) is not driver:
        raise ConfigurationError(f"dsn {dsn!r} does not match driver {driver.value!r}")

    return create_engine_from_settings(settings_from_mapping({"DATABASE_URL": url, "DEBUG": True}))


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """비동기 세션 팩토리를 생성합니다.

    expire_on_commit=False: 커밋 후에도 객체 속성 접근 가능
    (Allows attribute access after commit without refresh)
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """비동기 데이터베이스 세션을 생성하고 종료 시 닫습니다.

    Dependency-style generator that yields an async session and always
    closes it, ensuring no connection leaks.

    Yields:
        AsyncSession: SQLAlchemy 비동기 세션 인스턴스 (Async session instance)
    """
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings

settings = get_settings()


def enable_sqlite_savepoints(engine: AsyncEngine, immediate: bool = False) -> None:
    """
    Let SQLAlchemy own transaction boundaries on SQLite.

    The sqlite3 driver's implicit BEGIN handling breaks SAVEPOINT, which
    commission inserts and notification dispatch rely on. With ``immediate``
    every transaction takes the write lock up front, so concurrent writers on
    a file database queue on the busy timeout instead of failing to upgrade.
    """
    begin_sql = "BEGIN IMMEDIATE" if immediate else "BEGIN"

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(begin_sql)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        sqlite_engine = create_async_engine(database_url, echo=echo, future=True)
        enable_sqlite_savepoints(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        database_url,
        echo=echo,
        future=True,
        pool_pre_ping=True,  # Test connections before using
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )


# echo=True for local dev to see SQL queries
engine = build_engine(settings.DATABASE_URL, echo=(settings.ENVIRONMENT == "local"))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from petal_economy.core.config import get_settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Lets SQLAlchemy emit BEGIN itself so SAVEPOINT release does not commit under pysqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


_settings = get_settings()

engine = create_async_engine(
    _settings.database_url,
    echo=_settings.database_echo,
    pool_pre_ping=True,
)
if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

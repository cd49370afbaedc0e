from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


# Базовый класс для моделей
class Base(DeclarativeBase):
    pass


def create_engine(dsn: str) -> AsyncEngine:
    engine = create_async_engine(dsn, echo=False, future=True)

    if engine.dialect.name == "sqlite":
        # pysqlite сам решает, когда слать BEGIN; берём управление на себя,
        # чтобы запись начиналась с блокировки всей базы
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_implicit_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(engine: AsyncEngine) -> None:
    # регистрируем все таблицы в метаданных
    from giftbot import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def insert_for(session: AsyncSession, model):
    """INSERT с поддержкой ON CONFLICT для текущего диалекта."""
    if session.bind.dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)

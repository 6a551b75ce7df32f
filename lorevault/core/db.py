import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from lorevault.config import settings
from lorevault.core.exceptions import StoreFailure, VaultError

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Создание асинхронного движка"""
    engine = create_async_engine(database_url, future=True, echo=echo)
    if engine.dialect.name == "sqlite":
        _install_sqlite_hooks(engine)
    return engine


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # BEGIN выдаем сами, иначе драйвер ломает SAVEPOINT
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        # Один писатель: конкурирующие транзакции ждут блокировку
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


# Асинхронный движок
engine = build_engine(settings.database_url, echo=settings.database_echo)

# Сессии
SessionLocal = build_session_factory(engine)


# Функция для dependency injection в FastAPI
async def get_db():
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Одна транзакция на операцию: commit при успехе, rollback при любой ошибке"""
    try:
        yield session
        await session.commit()
    except VaultError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Transaction aborted: {e}")
        raise StoreFailure(f"Transaction aborted: {e}") from e
    except BaseException:
        # включая отмену задачи: частичные изменения не сохраняются
        await session.rollback()
        raise


async def init_models(target_engine: AsyncEngine) -> None:
    """Создание схемы по метаданным моделей"""
    from lorevault.db.models import Base

    async with target_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def verify_schema(target_engine: AsyncEngine) -> None:
    """Проверка каскадных внешних ключей против графа владения"""
    from lorevault.domains.graph.entities import entity_graph

    async with target_engine.connect() as conn:
        await conn.run_sync(entity_graph.verify_schema)

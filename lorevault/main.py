import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lorevault import __version__
from lorevault.api.http import (
    audit_router, entities_router, health_router, relationship_types_router,
    relationships_router, snapshots_router, trash_router
)
from lorevault.config import settings
from lorevault.core.db import SessionLocal, engine, init_models, unit_of_work, verify_schema
from lorevault.core.exceptions import VaultError
from lorevault.core.logging import configure_logging
from lorevault.domains.trash.services import TrashService

logger = logging.getLogger(__name__)


async def run_retention_cleanup() -> int:
    """Очистка корзины по сроку хранения при запуске"""
    async with SessionLocal() as session:
        async with unit_of_work(session):
            return await TrashService(session).cleanup_old_entries(settings.trash_retention_days)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.create_schema:
        await init_models(engine)
    await verify_schema(engine)

    if settings.cleanup_on_startup:
        try:
            removed = await run_retention_cleanup()
            logger.info(f"Startup trash cleanup removed {removed} entries")
        except VaultError as e:
            logger.warning(f"Startup trash cleanup failed: {e.message}")

    yield
    await engine.dispose()


app = FastAPI(
    title="Lorevault",
    description="Корзина, снимки, связи и аудит для проектов worldbuilding",
    version=__version__,
    lifespan=lifespan
)

# Подключаем роутеры
app.include_router(health_router)
app.include_router(entities_router)
app.include_router(trash_router)
app.include_router(snapshots_router)
app.include_router(relationships_router)
app.include_router(relationship_types_router)
app.include_router(audit_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "Lorevault API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }

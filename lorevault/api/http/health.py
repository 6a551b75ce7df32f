from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault import __version__
from lorevault.core.db import get_db
from lorevault.domains.audit.services import AuditLogger

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Проверка состояния сервиса и хранилища"""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        database = f"error: {e}"
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "version": __version__,
        "database": database,
        "audit_degraded_count": AuditLogger.degraded_count
    }

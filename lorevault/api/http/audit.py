from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.core.db import get_db
from lorevault.domains.audit.schemas import AuditLogEntryResponse, AuditLogListResponse
from lorevault.domains.audit.services import AuditLogger

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/", response_model=AuditLogListResponse)
async def query_audit_log(
    limit: int = Query(100, ge=1, le=1000),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Чтение журнала аудита"""
    entries = await AuditLogger(db).query(
        limit=limit, entity_type=entity_type, entity_id=entity_id, action=action
    )
    return AuditLogListResponse(
        entries=[AuditLogEntryResponse.model_validate(entry) for entry in entries],
        degraded_count=AuditLogger.degraded_count
    )

import json
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.db.models.archive import AuditLog as AuditLogModel

if TYPE_CHECKING:
    from lorevault.domains.audit.entities import AuditLogEntry


class AuditRepository:
    """Репозиторий журнала аудита (только добавление и чтение)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, entry: "AuditLogEntry") -> "AuditLogEntry":
        await self.session.execute(
            insert(AuditLogModel).values(
                id=entry.id,
                ts=entry.ts,
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                details_json=json.dumps(entry.details, ensure_ascii=False, sort_keys=True, default=str)
            )
        )
        return entry

    async def query(
        self,
        limit: int = 100,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None
    ) -> List["AuditLogEntry"]:
        """Последние записи журнала с фильтрами"""
        query = select(AuditLogModel.__table__)
        if entity_type:
            query = query.where(AuditLogModel.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLogModel.entity_id == entity_id)
        if action:
            query = query.where(AuditLogModel.action == action)

        result = await self.session.execute(
            query.order_by(AuditLogModel.ts.desc(), AuditLogModel.id.desc()).limit(limit)
        )
        return [self._to_domain(row) for row in result.mappings().all()]

    def _to_domain(self, row) -> "AuditLogEntry":
        """Преобразование строки БД в доменную сущность"""
        from lorevault.domains.audit.entities import AuditLogEntry

        details = json.loads(row["details_json"]) if row["details_json"] else {}
        return AuditLogEntry(
            id=row["id"],
            action=row["action"],
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            details=details,
            ts=row["ts"]
        )

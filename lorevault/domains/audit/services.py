import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.core.logging import AUDIT_FALLBACK_LOGGER
from lorevault.db.repositories.audit_repository import AuditRepository
from lorevault.domains.audit.entities import AuditLogEntry

logger = logging.getLogger(__name__)
fallback_logger = logging.getLogger(AUDIT_FALLBACK_LOGGER)


class AuditLogger:
    """Журнал аудита внутри транзакции вызывающей операции"""

    # Сколько записей не удалось сохранить за время жизни процесса
    degraded_count = 0

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_repository = AuditRepository(session)

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> Optional[AuditLogEntry]:
        """Запись действия; сбой откатывает только savepoint и не прерывает операцию"""
        entry = AuditLogEntry.create_entry(action, entity_type, entity_id, details)
        try:
            async with self.session.begin_nested():
                await self.audit_repository.append(entry)
        except (SQLAlchemyError, TypeError, ValueError) as e:
            AuditLogger.degraded_count += 1
            fallback_logger.warning(
                f"Audit record lost: action={action} entity={entity_type}:{entity_id} "
                f"details={details!r} error={e}"
            )
            return None
        logger.debug(f"Audit: {action} {entity_type}:{entity_id}")
        return entry

    async def query(
        self,
        limit: int = 100,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Чтение журнала, новые записи первыми"""
        return await self.audit_repository.query(
            limit=limit,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action
        )

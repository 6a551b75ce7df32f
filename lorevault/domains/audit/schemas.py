from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict


class AuditLogEntryResponse(BaseModel):
    """Схема записи журнала аудита"""
    id: str
    ts: datetime
    action: str
    entity_type: str
    entity_id: str
    details: Dict[str, Any]

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    entries: List[AuditLogEntryResponse]
    degraded_count: int

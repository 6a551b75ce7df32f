import uuid
from datetime import datetime
from typing import Any, Dict, Optional


class AuditAction:
    """Имена действий в журнале аудита"""
    TRASH_MOVE_AND_DELETE = "trash_move_and_delete"
    TRASH_RESTORE = "trash_restore"
    TRASH_PERMANENT_DELETE = "trash_permanent_delete"
    TRASH_EMPTY = "trash_empty"
    TRASH_CLEANUP = "trash_cleanup"
    ENTITY_PURGE = "entity_purge"
    SNAPSHOT_CREATE = "snapshot_create"
    SNAPSHOT_RESTORE = "snapshot_restore"
    SNAPSHOT_DELETE = "snapshot_delete"
    RELATIONSHIP_LINK = "relationship_link"
    RELATIONSHIP_UNLINK = "relationship_unlink"
    RELATIONSHIP_TYPE_CREATE = "relationship_type_create"
    RELATIONSHIP_TYPE_DELETE = "relationship_type_delete"


class AuditLogEntry:
    """Неизменяемая запись журнала аудита"""

    def __init__(
        self,
        id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None,
        ts: Optional[datetime] = None
    ):
        self.id = id
        self.action = action
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.details = details or {}
        self.ts = ts or datetime.utcnow()

    @classmethod
    def create_entry(
        cls,
        action: str,
        entity_type: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> "AuditLogEntry":
        return cls(
            id=f"audit-{uuid.uuid4()}",
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details
        )

    def __repr__(self) -> str:
        return f"AuditLogEntry(action={self.action}, entity={self.entity_type}:{self.entity_id})"

from lorevault.domains.audit.entities import AuditAction, AuditLogEntry
from lorevault.domains.audit.schemas import AuditLogEntryResponse, AuditLogListResponse

__all__ = [
    "AuditAction", "AuditLogEntry",
    "AuditLogEntryResponse", "AuditLogListResponse"
]

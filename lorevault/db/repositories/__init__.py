from lorevault.db.repositories.trash_repository import TrashRepository
from lorevault.db.repositories.snapshot_repository import SnapshotRepository
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.db.repositories.audit_repository import AuditRepository
from lorevault.db.repositories.meta_repository import MetaRepository
from lorevault.db.repositories.entity_repository import EntityRepository

__all__ = [
    "TrashRepository",
    "SnapshotRepository",
    "RelationshipRepository",
    "AuditRepository",
    "MetaRepository",
    "EntityRepository"
]

from lorevault.db.base import Base
from lorevault.db.models.world import Universe, Location, BestiaryEntry, TimelineEra, TimelineEvent
from lorevault.db.models.forge import Novel, Chapter, Scene
from lorevault.db.models.kanban import Board, BoardColumn, Card
from lorevault.db.models.archive import (
    TrashEntry, UniverseSnapshot, RelationshipType, Relationship, AuditLog, DbMeta
)

__all__ = [
    "Base",
    "Universe",
    "Location",
    "BestiaryEntry",
    "TimelineEra",
    "TimelineEvent",
    "Novel",
    "Chapter",
    "Scene",
    "Board",
    "BoardColumn",
    "Card",
    "TrashEntry",
    "UniverseSnapshot",
    "RelationshipType",
    "Relationship",
    "AuditLog",
    "DbMeta",
]

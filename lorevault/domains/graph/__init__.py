from lorevault.domains.graph.entities import (
    EntityGraph, EntityKind, EntityRef, KindSpec, OwnershipEdge, ReferenceEdge, entity_graph
)
from lorevault.domains.graph.schemas import (
    CapturedReference, CapturedRow, EntityRefSchema, RelationshipRecord,
    SnapshotRecord, SubtreePayload, PAYLOAD_FORMAT_VERSION
)

__all__ = [
    "EntityGraph", "EntityKind", "EntityRef", "KindSpec", "OwnershipEdge",
    "ReferenceEdge", "entity_graph",
    "CapturedReference", "CapturedRow", "EntityRefSchema", "RelationshipRecord",
    "SnapshotRecord", "SubtreePayload", "PAYLOAD_FORMAT_VERSION"
]

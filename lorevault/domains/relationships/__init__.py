from lorevault.domains.relationships.entities import Relationship, RelationshipType
from lorevault.domains.relationships.schemas import (
    RelationshipCreate, RelationshipListResponse, RelationshipResponse,
    RelationshipTypeCreate, RelationshipTypeResponse
)

__all__ = [
    "Relationship", "RelationshipType",
    "RelationshipCreate", "RelationshipListResponse", "RelationshipResponse",
    "RelationshipTypeCreate", "RelationshipTypeResponse"
]

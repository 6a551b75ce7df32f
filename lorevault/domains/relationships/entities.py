import uuid
from typing import Optional, Tuple

from lorevault.db.base import epoch_now


class RelationshipType:
    """Именованный вид связи ("союзник", "обитает в")"""

    def __init__(
        self,
        id: str,
        name: str,
        description: str = "",
        directed: bool = False
    ):
        self.id = id
        self.name = name
        self.description = description
        self.directed = directed

    @classmethod
    def create_type(cls, name: str, directed: bool = False, description: str = "") -> "RelationshipType":
        """Создание нового вида связи"""
        return cls(
            id=f"rt-{uuid.uuid4()}",
            name=name,
            description=description,
            directed=directed
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, RelationshipType):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"RelationshipType(id={self.id}, name={self.name}, directed={self.directed})"


class Relationship:
    """Ребро между двумя произвольными сущностями"""

    def __init__(
        self,
        id: str,
        relationship_type_id: str,
        from_type: str,
        from_id: str,
        to_type: str,
        to_id: str,
        note: str = "",
        created_at: Optional[int] = None,
        type_name: Optional[str] = None,
        directed: Optional[bool] = None
    ):
        self.id = id
        self.relationship_type_id = relationship_type_id
        self.from_type = from_type
        self.from_id = from_id
        self.to_type = to_type
        self.to_id = to_id
        self.note = note
        self.created_at = created_at if created_at is not None else epoch_now()
        self.type_name = type_name
        self.directed = directed

    @property
    def from_endpoint(self) -> Tuple[str, str]:
        return self.from_type, self.from_id

    @property
    def to_endpoint(self) -> Tuple[str, str]:
        return self.to_type, self.to_id

    def involves(self, entity_type: str, entity_id: str) -> bool:
        return (entity_type, entity_id) in (self.from_endpoint, self.to_endpoint)

    def other_endpoint(self, entity_type: str, entity_id: str) -> Tuple[str, str]:
        """Противоположный конец ребра с точки зрения сущности"""
        if self.from_endpoint == (entity_type, entity_id):
            return self.to_endpoint
        return self.from_endpoint

    @classmethod
    def create_relationship(
        cls,
        relationship_type_id: str,
        from_type: str,
        from_id: str,
        to_type: str,
        to_id: str,
        note: str = ""
    ) -> "Relationship":
        """Создание нового ребра"""
        return cls(
            id=f"rel-{uuid.uuid4()}",
            relationship_type_id=relationship_type_id,
            from_type=from_type,
            from_id=from_id,
            to_type=to_type,
            to_id=to_id,
            note=note
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Relationship):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return (
            f"Relationship(id={self.id}, type={self.relationship_type_id}, "
            f"from={self.from_type}:{self.from_id}, to={self.to_type}:{self.to_id})"
        )

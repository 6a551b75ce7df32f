from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field, ValidationError

from lorevault.core.exceptions import SerializationFailure
from lorevault.domains.graph.entities import EntityKind, EntityRef

PAYLOAD_FORMAT_VERSION = 1


class EntityRefSchema(BaseModel):
    """Ссылка на сущность внутри payload"""
    kind: EntityKind
    id: str

    def to_ref(self) -> EntityRef:
        return EntityRef(self.kind, self.id)

    @classmethod
    def from_ref(cls, ref: EntityRef) -> "EntityRefSchema":
        return cls(kind=ref.kind, id=ref.id)


class CapturedRow(BaseModel):
    """Полный набор полей одной строки с исходным идентификатором"""
    kind: EntityKind
    id: str
    fields: Dict[str, Any]

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.kind, self.id)


class CapturedReference(BaseModel):
    """Ссылка строки вне поддерева на член поддерева"""
    kind: EntityKind
    id: str
    column: str
    target_id: str


class RelationshipRecord(BaseModel):
    id: str
    relationship_type_id: str
    type_name: str
    type_description: str = ""
    directed: bool = False
    from_type: str
    from_id: str
    to_type: str
    to_id: str
    note: str = ""
    created_at: int


class SnapshotRecord(BaseModel):
    id: str
    universe_id: str
    name: str = ""
    created_at: datetime
    size_bytes: int
    compressed_bytes: int
    compressed_b64: str


class SubtreePayload(BaseModel):
    """Сериализованное поддерево: корень, потомки сверху вниз и связи"""
    format_version: int = PAYLOAD_FORMAT_VERSION
    root: EntityRefSchema
    parent: Optional[EntityRefSchema] = None
    # Цепочка предков от родителя до корня иерархии
    ancestors: List[EntityRefSchema] = Field(default_factory=list)
    rows: List[CapturedRow]
    references: List[CapturedReference] = Field(default_factory=list)
    relationships: List[RelationshipRecord] = Field(default_factory=list)
    snapshots: List[SnapshotRecord] = Field(default_factory=list)
    # Поддеревья досок PM, связанных с членами поддерева (только в снимках)
    attached: List[CapturedRow] = Field(default_factory=list)

    @property
    def root_row(self) -> CapturedRow:
        return self.rows[0]

    def members(self) -> Set[EntityRef]:
        return {row.ref for row in self.rows}

    def attached_roots(self) -> List[EntityRef]:
        return [row.ref for row in self.attached if row.kind == EntityKind.BOARD]

    def encode(self) -> str:
        try:
            return self.model_dump_json()
        except (TypeError, ValueError) as e:
            raise SerializationFailure(
                f"Cannot serialize payload: {e}",
                entity_type=self.root.kind.value,
                entity_id=self.root.id
            ) from e

    @classmethod
    def decode(cls, raw: str) -> "SubtreePayload":
        try:
            payload = cls.model_validate_json(raw)
        except ValidationError as e:
            raise SerializationFailure(f"Cannot parse payload: {e}") from e

        if payload.format_version != PAYLOAD_FORMAT_VERSION:
            raise SerializationFailure(
                f"Unsupported payload format version: {payload.format_version}",
                entity_type=payload.root.kind.value,
                entity_id=payload.root.id
            )
        if not payload.rows or payload.rows[0].ref != payload.root.to_ref():
            raise SerializationFailure(
                "Payload rows do not start with the root entity",
                entity_type=payload.root.kind.value,
                entity_id=payload.root.id
            )
        return payload

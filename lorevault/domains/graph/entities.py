import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import Table, inspect

from lorevault.core.exceptions import InvalidOperation, SchemaMismatch
from lorevault.db.models import (
    Universe, Location, BestiaryEntry, TimelineEra, TimelineEvent,
    Novel, Chapter, Scene, Board, BoardColumn, Card
)

logger = logging.getLogger(__name__)


class EntityKind(str, enum.Enum):
    UNIVERSE = "universe"
    LOCATION = "location"
    CREATURE = "creature"
    ERA = "era"
    EVENT = "event"
    NOVEL = "novel"
    CHAPTER = "chapter"
    SCENE = "scene"
    BOARD = "board"
    COLUMN = "column"
    CARD = "card"


@dataclass(frozen=True)
class EntityRef:
    """Ссылка на сущность любого вида"""
    kind: EntityKind
    id: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class KindSpec:
    kind: EntityKind
    table: Table
    capability: str

    @property
    def position_column(self) -> Optional[str]:
        return "position" if "position" in self.table.c else None

    @property
    def label_column(self) -> str:
        return "name" if "name" in self.table.c else "title"


@dataclass(frozen=True)
class OwnershipEdge:
    """Ребро владения: удаление родителя каскадно удаляет ребенка"""
    parent: EntityKind
    child: EntityKind
    fk_column: str
    # Ребро действует только если эта колонка пуста (вложенные локации)
    unless_set: Optional[str] = None


@dataclass(frozen=True)
class ReferenceEdge:
    """Невладеющая ссылка строки на другую сущность (ON DELETE SET NULL)"""
    kind: EntityKind
    column: str
    target: EntityKind


class EntityGraph:
    """Статическая модель вложенности и ссылок между видами сущностей"""

    def __init__(
        self,
        kinds: List[KindSpec],
        ownership: List[OwnershipEdge],
        references: List[ReferenceEdge]
    ):
        self._kinds: Dict[EntityKind, KindSpec] = {spec.kind: spec for spec in kinds}
        self._ownership = list(ownership)
        self._references = list(references)

        missing = [kind for kind in EntityKind if kind not in self._kinds]
        if missing:
            raise ValueError(f"Entity kinds without table: {missing}")

    def spec(self, kind: EntityKind) -> KindSpec:
        return self._kinds[kind]

    def table_for(self, kind: EntityKind) -> Table:
        return self._kinds[kind].table

    def kinds(self) -> List[EntityKind]:
        return list(self._kinds)

    def parse_kind(self, value: Any) -> EntityKind:
        """Разбор вида сущности из строки"""
        try:
            return EntityKind(value)
        except ValueError:
            raise InvalidOperation(f"Unknown entity kind: {value}", entity_type=str(value))

    def is_root(self, kind: EntityKind) -> bool:
        return not self.owner_edges(kind)

    def children_edges(self, kind: EntityKind) -> List[OwnershipEdge]:
        return [edge for edge in self._ownership if edge.parent == kind]

    def owner_edges(self, kind: EntityKind) -> List[OwnershipEdge]:
        return [edge for edge in self._ownership if edge.child == kind]

    def owner_of(
        self, kind: EntityKind, row: Mapping[str, Any]
    ) -> Optional[Tuple[OwnershipEdge, EntityRef]]:
        """Ребро и родитель, которым принадлежит конкретная строка"""
        for edge in self.owner_edges(kind):
            if edge.unless_set and row.get(edge.unless_set) is not None:
                continue
            parent_id = row.get(edge.fk_column)
            if parent_id is None:
                continue
            return edge, EntityRef(edge.parent, parent_id)
        return None

    def can_own(self, parent: EntityKind, child: EntityKind) -> Optional[OwnershipEdge]:
        for edge in self.owner_edges(child):
            if edge.parent == parent:
                return edge
        return None

    def references_from(self, kind: EntityKind) -> List[ReferenceEdge]:
        return [ref for ref in self._references if ref.kind == kind]

    def references_into(self, kind: EntityKind) -> List[ReferenceEdge]:
        return [ref for ref in self._references if ref.target == kind]

    def capability_for(self, kind: EntityKind) -> str:
        return self._kinds[kind].capability

    def label(self, kind: EntityKind, row: Mapping[str, Any]) -> str:
        return str(row.get(self._kinds[kind].label_column) or "")

    def verify_schema(self, sync_connection) -> None:
        """Сверка внешних ключей живой схемы с ребрами владения"""
        inspector = inspect(sync_connection)
        existing_tables = set(inspector.get_table_names())
        problems: List[str] = []

        for spec in self._kinds.values():
            if spec.table.name not in existing_tables:
                problems.append(f"missing table {spec.table.name}")

        def ondelete_for(table: str, column: str, referred: str) -> Optional[str]:
            for fk in inspector.get_foreign_keys(table):
                if fk.get("constrained_columns") == [column] and fk.get("referred_table") == referred:
                    return ((fk.get("options") or {}).get("ondelete") or "NO ACTION").upper()
            return None

        for edge in self._ownership:
            child_table = self.table_for(edge.child).name
            parent_table = self.table_for(edge.parent).name
            if child_table not in existing_tables:
                continue
            rule = ondelete_for(child_table, edge.fk_column, parent_table)
            if rule is None:
                problems.append(f"{child_table}.{edge.fk_column} has no foreign key to {parent_table}")
            elif rule != "CASCADE":
                problems.append(f"{child_table}.{edge.fk_column} -> {parent_table} is ON DELETE {rule}, expected CASCADE")

        for ref in self._references:
            table = self.table_for(ref.kind).name
            if table not in existing_tables:
                continue
            rule = ondelete_for(table, ref.column, self.table_for(ref.target).name)
            if rule == "CASCADE":
                problems.append(f"{table}.{ref.column} is a non-owning reference but cascades")

        if problems:
            for problem in problems:
                logger.error(f"Schema mismatch: {problem}")
            raise SchemaMismatch(
                "Schema cascade rules do not match the ownership graph",
                details={"problems": problems}
            )
        logger.info("Schema cascade rules match the ownership graph")


entity_graph = EntityGraph(
    kinds=[
        KindSpec(EntityKind.UNIVERSE, Universe.__table__, "worldbuilding"),
        KindSpec(EntityKind.LOCATION, Location.__table__, "worldbuilding"),
        KindSpec(EntityKind.CREATURE, BestiaryEntry.__table__, "worldbuilding"),
        KindSpec(EntityKind.ERA, TimelineEra.__table__, "timeline"),
        KindSpec(EntityKind.EVENT, TimelineEvent.__table__, "timeline"),
        KindSpec(EntityKind.NOVEL, Novel.__table__, "novel"),
        KindSpec(EntityKind.CHAPTER, Chapter.__table__, "novel"),
        KindSpec(EntityKind.SCENE, Scene.__table__, "novel"),
        KindSpec(EntityKind.BOARD, Board.__table__, "pm"),
        KindSpec(EntityKind.COLUMN, BoardColumn.__table__, "pm"),
        KindSpec(EntityKind.CARD, Card.__table__, "pm"),
    ],
    # Порядок ребер = порядок вставки при восстановлении
    ownership=[
        OwnershipEdge(EntityKind.UNIVERSE, EntityKind.LOCATION, "universe_id", unless_set="parent_id"),
        OwnershipEdge(EntityKind.LOCATION, EntityKind.LOCATION, "parent_id"),
        OwnershipEdge(EntityKind.UNIVERSE, EntityKind.CREATURE, "universe_id"),
        OwnershipEdge(EntityKind.UNIVERSE, EntityKind.ERA, "universe_id"),
        OwnershipEdge(EntityKind.UNIVERSE, EntityKind.EVENT, "universe_id"),
        OwnershipEdge(EntityKind.UNIVERSE, EntityKind.NOVEL, "universe_id"),
        OwnershipEdge(EntityKind.NOVEL, EntityKind.CHAPTER, "novel_id"),
        OwnershipEdge(EntityKind.CHAPTER, EntityKind.SCENE, "chapter_id"),
        OwnershipEdge(EntityKind.BOARD, EntityKind.COLUMN, "board_id"),
        OwnershipEdge(EntityKind.COLUMN, EntityKind.CARD, "column_id"),
    ],
    references=[
        ReferenceEdge(EntityKind.CREATURE, "home_location_id", EntityKind.LOCATION),
        ReferenceEdge(EntityKind.EVENT, "location_id", EntityKind.LOCATION),
    ],
)

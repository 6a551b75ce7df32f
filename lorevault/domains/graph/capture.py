import logging
from collections import deque
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.core.exceptions import NotFound
from lorevault.db.repositories.entity_repository import EntityRepository
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.db.repositories.snapshot_repository import SnapshotRepository
from lorevault.domains.graph.entities import (
    EntityGraph, EntityKind, EntityRef, OwnershipEdge, entity_graph
)
from lorevault.domains.graph.schemas import (
    CapturedReference, CapturedRow, EntityRefSchema, RelationshipRecord,
    SnapshotRecord, SubtreePayload
)

logger = logging.getLogger(__name__)

# Корни иерархий, которые снимок вселенной забирает по ребрам связей
ATTACHED_ROOT_KINDS = (EntityKind.BOARD,)


class CaptureEngine:
    """Захват поддерева владения со всеми потомками и связями"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.entity_repository = EntityRepository(session, graph)
        self.relationship_repository = RelationshipRepository(session)
        self.snapshot_repository = SnapshotRepository(session)

    async def capture(
        self,
        kind: EntityKind,
        entity_id: str,
        include_snapshots: bool = True,
        include_attached: bool = False
    ) -> SubtreePayload:
        """Снимок поддерева: корень, потомки сверху вниз, связи и внешние ссылки"""
        root = EntityRef(kind, entity_id)
        root_row = await self.entity_repository.load(root)
        if root_row is None:
            raise NotFound(f"{kind.value} not found", entity_type=kind.value, entity_id=entity_id)

        rows = await self._walk(root, root_row)
        members = {row.ref for row in rows}

        owner = self.graph.owner_of(kind, root_row)
        parent = owner[1] if owner else None
        ancestors = await self._ancestors(parent) if parent else []

        attached: List[CapturedRow] = []
        if include_attached:
            for board in await self.attached_roots(members):
                board_row = await self.entity_repository.load(board)
                attached.extend(await self._walk(board, board_row))

        relationships = await self._relationships(members | {row.ref for row in attached})
        references = await self._inbound_references(members)

        snapshots: List[SnapshotRecord] = []
        if include_snapshots and kind == EntityKind.UNIVERSE:
            for snapshot in await self.snapshot_repository.list_for_universe(entity_id):
                snapshots.append(SnapshotRecord(
                    id=snapshot.id,
                    universe_id=snapshot.universe_id,
                    name=snapshot.name,
                    created_at=snapshot.created_at,
                    size_bytes=snapshot.size_bytes,
                    compressed_bytes=snapshot.compressed_bytes,
                    compressed_b64=snapshot.compressed_b64
                ))

        logger.debug(
            f"Captured {root}: {len(rows)} rows, {len(relationships)} relationships, "
            f"{len(references)} inbound references"
        )
        return SubtreePayload(
            root=EntityRefSchema.from_ref(root),
            parent=EntityRefSchema.from_ref(parent) if parent else None,
            ancestors=[EntityRefSchema.from_ref(ref) for ref in ancestors],
            rows=rows,
            references=references,
            relationships=relationships,
            snapshots=snapshots,
            attached=attached
        )

    async def members(self, kind: EntityKind, entity_id: str) -> Set[EntityRef]:
        """Ссылки на все сущности поддерева без сериализации"""
        root = EntityRef(kind, entity_id)
        root_row = await self.entity_repository.load(root)
        if root_row is None:
            raise NotFound(f"{kind.value} not found", entity_type=kind.value, entity_id=entity_id)
        return {row.ref for row in await self._walk(root, root_row)}

    async def attached_roots(self, members: Set[EntityRef]) -> List[EntityRef]:
        """Корни досок PM, с которыми члены поддерева связаны ребрами"""
        roots: Set[EntityRef] = set()
        for rel in await self.relationship_repository.touching(members):
            for kind_value, other_id in (rel.from_endpoint, rel.to_endpoint):
                try:
                    other = EntityRef(EntityKind(kind_value), other_id)
                except ValueError:
                    continue
                if other in members:
                    continue
                chain = await self._ancestors(other)
                if chain and chain[-1].kind in ATTACHED_ROOT_KINDS:
                    roots.add(chain[-1])
        return sorted(roots, key=lambda ref: ref.id)

    async def _walk(self, root: EntityRef, root_row: Dict[str, Any]) -> List[CapturedRow]:
        # Обход в ширину: владелец всегда раньше своих потомков
        captured = [CapturedRow(kind=root.kind, id=root.id, fields=root_row)]
        queue = deque([(root.kind, root_row)])
        while queue:
            parent_kind, parent_row = queue.popleft()
            for edge in self.graph.children_edges(parent_kind):
                for child_row in await self._children(edge, parent_row["id"]):
                    captured.append(CapturedRow(kind=edge.child, id=child_row["id"], fields=child_row))
                    queue.append((edge.child, child_row))
        return captured

    async def _children(self, edge: OwnershipEdge, parent_id: str) -> List[Dict[str, Any]]:
        spec = self.graph.spec(edge.child)
        table = spec.table
        query = select(table).where(table.c[edge.fk_column] == parent_id)
        if edge.unless_set:
            query = query.where(table.c[edge.unless_set].is_(None))
        if spec.position_column:
            query = query.order_by(table.c[spec.position_column].asc(), table.c.id.asc())
        else:
            query = query.order_by(table.c.id.asc())
        result = await self.session.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def _ancestors(self, parent: EntityRef) -> List[EntityRef]:
        """Цепочка владельцев от непосредственного родителя до корня"""
        chain: List[EntityRef] = []
        current: Optional[EntityRef] = parent
        while current is not None and current not in chain:
            row = await self.entity_repository.load(current)
            if row is None:
                break
            chain.append(current)
            owner = self.graph.owner_of(current.kind, row)
            current = owner[1] if owner else None
        return chain

    async def _relationships(self, members: Set[EntityRef]) -> List[RelationshipRecord]:
        relationships = await self.relationship_repository.touching(members)
        if not relationships:
            return []
        types = {t.id: t for t in await self.relationship_repository.list_types()}
        records = []
        for rel in relationships:
            rel_type = types.get(rel.relationship_type_id)
            records.append(RelationshipRecord(
                id=rel.id,
                relationship_type_id=rel.relationship_type_id,
                type_name=rel.type_name or (rel_type.name if rel_type else rel.relationship_type_id),
                type_description=rel_type.description if rel_type else "",
                directed=bool(rel.directed),
                from_type=rel.from_type,
                from_id=rel.from_id,
                to_type=rel.to_type,
                to_id=rel.to_id,
                note=rel.note or "",
                created_at=rel.created_at
            ))
        return records

    async def _inbound_references(self, members: Set[EntityRef]) -> List[CapturedReference]:
        """Невладеющие ссылки строк вне поддерева на его члены"""
        ids_by_kind: Dict[EntityKind, Set[str]] = {}
        for ref in members:
            ids_by_kind.setdefault(ref.kind, set()).add(ref.id)

        references: List[CapturedReference] = []
        for target_kind, ids in ids_by_kind.items():
            for ref_edge in self.graph.references_into(target_kind):
                table = self.graph.table_for(ref_edge.kind)
                column = table.c[ref_edge.column]
                result = await self.session.execute(
                    select(table.c.id, column)
                    .where(column.in_(sorted(ids)))
                    .order_by(table.c.id.asc())
                )
                for source_id, target_id in result.all():
                    if EntityRef(ref_edge.kind, source_id) in members:
                        continue
                    references.append(CapturedReference(
                        kind=ref_edge.kind,
                        id=source_id,
                        column=ref_edge.column,
                        target_id=target_id
                    ))
        return references

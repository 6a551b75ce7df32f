import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.db.repositories.entity_repository import EntityRepository
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.db.repositories.snapshot_repository import SnapshotRepository
from lorevault.domains.graph.entities import EntityGraph, EntityKind, EntityRef, entity_graph
from lorevault.domains.graph.schemas import (
    CapturedReference, CapturedRow, RelationshipRecord, SnapshotRecord
)
from lorevault.domains.relationships.entities import Relationship, RelationshipType
from lorevault.domains.snapshots.entities import Snapshot

logger = logging.getLogger(__name__)


class WriteReport:
    """Что удалось вставить и что пропущено при повторной вставке поддерева"""

    def __init__(self):
        self.restored_rows = 0
        self.reattached_relationships: List[str] = []
        self.skipped_relationships: List[str] = []
        self.recreated_types: List[str] = []
        self.reapplied_references = 0
        self.dropped_references = 0
        self.restored_snapshots = 0


class SubtreeWriter:
    """Повторная вставка захваченного поддерева с исходными идентификаторами"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.entity_repository = EntityRepository(session, graph)
        self.relationship_repository = RelationshipRepository(session)
        self.snapshot_repository = SnapshotRepository(session)

    async def find_existing(self, rows: Iterable[CapturedRow]) -> List[EntityRef]:
        """Какие из захваченных идентификаторов уже заняты живыми строками"""
        return await self.entity_repository.existing(row.ref for row in rows)

    async def insert_rows(
        self,
        rows: List[CapturedRow],
        overrides: Optional[Dict[str, Any]] = None,
        report: Optional[WriteReport] = None
    ) -> WriteReport:
        """Вставка строк сверху вниз; невладеющие ссылки проставляются вторым проходом.

        overrides применяются только к первой строке (корню поддерева).
        """
        report = report or WriteReport()
        deferred = []

        for index, row in enumerate(rows):
            table = self.graph.table_for(row.kind)
            values = {key: value for key, value in row.fields.items() if key in table.c}
            if index == 0 and overrides:
                values.update(overrides)

            for ref_edge in self.graph.references_from(row.kind):
                target_id = values.get(ref_edge.column)
                if target_id is not None:
                    values[ref_edge.column] = None
                    deferred.append((row, ref_edge, target_id))

            await self.session.execute(insert(table).values(**values))
            report.restored_rows += 1

        for row, ref_edge, target_id in deferred:
            if not await self.entity_repository.exists(EntityRef(ref_edge.target, target_id)):
                logger.info(f"Reference {row.kind.value}:{row.id}.{ref_edge.column} -> {target_id} dropped")
                report.dropped_references += 1
                continue
            table = self.graph.table_for(row.kind)
            await self.session.execute(
                update(table).where(table.c.id == row.id).values({ref_edge.column: target_id})
            )
        return report

    async def reattach_relationships(
        self,
        records: Iterable[RelationshipRecord],
        report: Optional[WriteReport] = None
    ) -> WriteReport:
        """Возврат ребер; ребра с отсутствующим концом пропускаются и попадают в отчет"""
        report = report or WriteReport()
        for record in records:
            endpoints = self._endpoints(record)
            if endpoints is None or len(await self.entity_repository.existing(endpoints)) != len(set(endpoints)):
                logger.info(f"Relationship {record.id} skipped: endpoint no longer exists")
                report.skipped_relationships.append(record.id)
                continue

            rel_type = await self._resolve_type(record, report)
            if await self.relationship_repository.get(record.id) is not None:
                report.skipped_relationships.append(record.id)
                continue
            duplicate = await self.relationship_repository.find_equivalent(
                rel_type.id, rel_type.directed,
                record.from_type, record.from_id, record.to_type, record.to_id
            )
            if duplicate is not None:
                logger.info(f"Relationship {record.id} skipped: equivalent edge {duplicate.id} exists")
                report.skipped_relationships.append(record.id)
                continue

            await self.relationship_repository.create(Relationship(
                id=record.id,
                relationship_type_id=rel_type.id,
                from_type=record.from_type,
                from_id=record.from_id,
                to_type=record.to_type,
                to_id=record.to_id,
                note=record.note,
                created_at=record.created_at
            ))
            report.reattached_relationships.append(record.id)
        return report

    async def reapply_references(
        self,
        references: Iterable[CapturedReference],
        report: Optional[WriteReport] = None
    ) -> WriteReport:
        """Возврат внешних ссылок на члены поддерева, если источник жив и ссылка пуста"""
        report = report or WriteReport()
        for reference in references:
            source_table = self.graph.table_for(reference.kind)
            column = source_table.c[reference.column]
            target_kind = next(
                ref_edge.target for ref_edge in self.graph.references_from(reference.kind)
                if ref_edge.column == reference.column
            )
            if not await self.entity_repository.exists(EntityRef(target_kind, reference.target_id)):
                report.dropped_references += 1
                continue
            result = await self.session.execute(
                update(source_table)
                .where(source_table.c.id == reference.id)
                .where(column.is_(None))
                .values({reference.column: reference.target_id})
            )
            if result.rowcount:
                report.reapplied_references += 1
            else:
                report.dropped_references += 1
        return report

    async def restore_snapshots(
        self,
        records: Iterable[SnapshotRecord],
        report: Optional[WriteReport] = None
    ) -> WriteReport:
        """Возврат снимков вселенной вместе с ней самой"""
        report = report or WriteReport()
        records = list(records)
        existing = set(await self.snapshot_repository.existing_ids(r.id for r in records))
        for record in records:
            if record.id in existing:
                continue
            await self.snapshot_repository.create(Snapshot(
                id=record.id,
                universe_id=record.universe_id,
                compressed_b64=record.compressed_b64,
                name=record.name,
                size_bytes=record.size_bytes,
                compressed_bytes=record.compressed_bytes,
                created_at=record.created_at
            ))
            report.restored_snapshots += 1
        return report

    def _endpoints(self, record: RelationshipRecord) -> Optional[List[EntityRef]]:
        try:
            return [
                EntityRef(EntityKind(record.from_type), record.from_id),
                EntityRef(EntityKind(record.to_type), record.to_id)
            ]
        except ValueError:
            return None

    async def _resolve_type(self, record: RelationshipRecord, report: WriteReport) -> RelationshipType:
        # Вид связи мог быть удален, пока ребро лежало в корзине
        rel_type = await self.relationship_repository.get_type(record.relationship_type_id)
        if rel_type is None:
            rel_type = await self.relationship_repository.get_type_by_name(record.type_name)
        if rel_type is None:
            rel_type = await self.relationship_repository.create_type(RelationshipType(
                id=record.relationship_type_id,
                name=record.type_name,
                description=record.type_description,
                directed=record.directed
            ))
            report.recreated_types.append(rel_type.id)
            logger.info(f"Relationship type '{rel_type.name}' recreated for restore")
        return rel_type

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.config import settings
from lorevault.core.exceptions import Conflict, InvalidOperation, NotFound, OrphanParent
from lorevault.db.repositories.entity_repository import EntityRepository
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.db.repositories.trash_repository import TrashRepository
from lorevault.domains.audit.entities import AuditAction
from lorevault.domains.audit.services import AuditLogger
from lorevault.domains.graph.capabilities import CapabilityGuard
from lorevault.domains.graph.capture import CaptureEngine
from lorevault.domains.graph.entities import (
    EntityGraph, EntityKind, EntityRef, entity_graph
)
from lorevault.domains.graph.schemas import SubtreePayload
from lorevault.domains.graph.writer import SubtreeWriter, WriteReport
from lorevault.domains.relationships.services import RelationshipService
from lorevault.domains.trash.entities import RestoreResult, TrashEntry

logger = logging.getLogger(__name__)

ORPHAN_POLICIES = ("fail", "nearest_ancestor")
POSITION_POLICIES = ("keep", "shift", "append", "fail")


class TrashService:
    """Сервис корзины: захват перед удалением и восстановление"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.trash_repository = TrashRepository(session)
        self.entity_repository = EntityRepository(session, graph)
        self.relationship_repository = RelationshipRepository(session)
        self.capture_engine = CaptureEngine(session, graph)
        self.writer = SubtreeWriter(session, graph)
        self.capabilities = CapabilityGuard(session, graph)
        self.audit = AuditLogger(session)

    async def move_to_trash(
        self,
        kind: EntityKind,
        entity_id: str,
        display_name: Optional[str] = None,
        display_info: Optional[str] = None
    ) -> TrashEntry:
        """Захват поддерева, запись в корзину и каскадное удаление корня.

        Вызывающий код выполняет метод внутри одной транзакции (unit_of_work):
        захват и удаление фиксируются вместе или не фиксируются вовсе.
        """
        await self.capabilities.require_trash_for(kind)
        payload = await self.capture_engine.capture(kind, entity_id)

        if display_name is None:
            display_name = self.graph.label(kind, payload.root_row.fields)
        entry = TrashEntry.create_entry(payload, display_name=display_name, display_info=display_info)
        await self.trash_repository.put(entry)

        # Ребра живут в payload, пока запись лежит в корзине
        removed_edges = await self.relationship_repository.delete_touching(payload.members())

        table = self.graph.table_for(kind)
        await self.session.execute(delete(table).where(table.c.id == entity_id))

        await self.audit.record(
            AuditAction.TRASH_MOVE_AND_DELETE, kind.value, entity_id,
            {
                "trash_id": entry.id,
                "rows": len(payload.rows),
                "relationships": removed_edges,
                "parent_type": entry.parent_type,
                "parent_id": entry.parent_id
            }
        )
        logger.info(f"Moved {kind.value}:{entity_id} to trash as {entry.id} ({len(payload.rows)} rows)")
        return entry

    async def restore(
        self,
        trash_id: str,
        orphan_policy: Optional[str] = None,
        position_policy: Optional[str] = None
    ) -> RestoreResult:
        """Восстановление поддерева из записи корзины"""
        orphan_policy = orphan_policy or settings.orphan_policy
        position_policy = position_policy or settings.position_policy
        if orphan_policy not in ORPHAN_POLICIES:
            raise InvalidOperation(f"Unknown orphan policy: {orphan_policy}")
        if position_policy not in POSITION_POLICIES:
            raise InvalidOperation(f"Unknown position policy: {position_policy}")

        entry = await self.trash_repository.get(trash_id)
        if entry is None:
            raise NotFound("Trash entry not found", entity_type="trash_entry", entity_id=trash_id)
        payload = entry.payload()
        root = payload.root.to_ref()
        await self.capabilities.require_trash_for(root.kind)

        existing = await self.writer.find_existing(payload.rows)
        if existing:
            raise Conflict(
                f"{len(existing)} captured entities already exist",
                entity_type=root.kind.value,
                entity_id=root.id,
                details={"existing": [str(ref) for ref in existing]}
            )

        overrides: Dict[str, Any] = {}
        parent, reattached = await self._resolve_parent(payload, orphan_policy)
        if reattached:
            overrides.update(self._attach_values(payload, parent))

        position = await self._apply_position_policy(payload, overrides, position_policy)

        report = WriteReport()
        await self.writer.insert_rows(payload.rows, overrides=overrides, report=report)
        await self.writer.reattach_relationships(payload.relationships, report=report)
        await self.writer.reapply_references(payload.references, report=report)
        if payload.snapshots:
            await self.writer.restore_snapshots(payload.snapshots, report=report)

        if not await self.trash_repository.remove(trash_id):
            raise NotFound("Trash entry vanished during restore", entity_type="trash_entry", entity_id=trash_id)

        await self.audit.record(
            AuditAction.TRASH_RESTORE, root.kind.value, root.id,
            {
                "trash_id": trash_id,
                "rows": report.restored_rows,
                "reattached_relationships": len(report.reattached_relationships),
                "skipped_relationships": report.skipped_relationships,
                "parent": str(parent) if parent else None,
                "reattached_to_ancestor": reattached,
                "position_policy": position_policy
            }
        )
        if report.skipped_relationships:
            logger.warning(
                f"Restored {root} with {len(report.skipped_relationships)} relationships skipped"
            )
        logger.info(f"Restored {root} from trash entry {trash_id}")
        return RestoreResult(
            trash_id=trash_id,
            root=root,
            parent=parent,
            restored_rows=report.restored_rows,
            reattached_relationships=report.reattached_relationships,
            skipped_relationships=report.skipped_relationships,
            reattached_to_ancestor=reattached,
            position=position
        )

    async def list_entries(
        self,
        target_type: Optional[str] = None,
        parent_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[TrashEntry]:
        """Список записей корзины без payload"""
        if target_type:
            self.graph.parse_kind(target_type)
        return await self.trash_repository.list(target_type, parent_id, limit, offset)

    async def get_entry(self, trash_id: str) -> TrashEntry:
        entry = await self.trash_repository.get(trash_id)
        if entry is None:
            raise NotFound("Trash entry not found", entity_type="trash_entry", entity_id=trash_id)
        return entry

    async def count(self, target_type: Optional[str] = None, parent_id: Optional[str] = None) -> int:
        if target_type:
            self.graph.parse_kind(target_type)
        return await self.trash_repository.count(target_type, parent_id)

    async def permanent_delete(self, trash_id: str) -> None:
        """Безвозвратное удаление записи корзины"""
        entry = await self.get_entry(trash_id)
        await self.trash_repository.remove(trash_id)
        await self.audit.record(
            AuditAction.TRASH_PERMANENT_DELETE, entry.target_type, entry.target_id,
            {"trash_id": trash_id, "display_name": entry.display_name}
        )
        logger.info(f"Trash entry {trash_id} deleted permanently")

    async def empty_trash(self) -> int:
        """Очистка корзины целиком"""
        removed = await self.trash_repository.remove_all()
        await self.audit.record(AuditAction.TRASH_EMPTY, "trash_entry", "*", {"removed": removed})
        logger.info(f"Trash emptied: {removed} entries removed")
        return removed

    async def cleanup_old_entries(self, days: Optional[int] = None) -> int:
        """Удаление записей старше срока хранения"""
        days = settings.trash_retention_days if days is None else days
        if days < 0:
            raise InvalidOperation("Retention period cannot be negative")
        cutoff = datetime.utcnow() - timedelta(days=days)
        removed = await self.trash_repository.remove_older_than(cutoff)
        if removed:
            await self.audit.record(
                AuditAction.TRASH_CLEANUP, "trash_entry", "*",
                {"removed": removed, "retention_days": days, "cutoff": cutoff.isoformat()}
            )
            logger.info(f"Trash cleanup removed {removed} entries older than {days} days")
        return removed

    async def _resolve_parent(
        self, payload: SubtreePayload, orphan_policy: str
    ) -> Tuple[Optional[EntityRef], bool]:
        """Родитель для корня: записанный или ближайший живой предок"""
        if payload.parent is None:
            return None, False
        parent = payload.parent.to_ref()
        if await self.entity_repository.exists(parent):
            return parent, False

        root = payload.root.to_ref()
        if orphan_policy == "nearest_ancestor":
            for ancestor_schema in payload.ancestors[1:]:
                ancestor = ancestor_schema.to_ref()
                if self.graph.can_own(ancestor.kind, root.kind) and await self.entity_repository.exists(ancestor):
                    logger.info(f"Parent {parent} of {root} is gone, attaching to {ancestor}")
                    return ancestor, True

        raise OrphanParent(
            f"Parent {parent} of {root} no longer exists",
            entity_type=root.kind.value,
            entity_id=root.id,
            parent_type=parent.kind.value,
            parent_id=parent.id
        )

    def _attach_values(self, payload: SubtreePayload, parent: EntityRef) -> Dict[str, Any]:
        root_kind = payload.root.kind
        values: Dict[str, Any] = {}
        # Колонки всех ребер владения корня, кроме выбранного, обнуляются
        for edge in self.graph.owner_edges(root_kind):
            if edge.parent != parent.kind and edge.fk_column in payload.root_row.fields:
                table = self.graph.table_for(root_kind)
                if table.c[edge.fk_column].nullable:
                    values[edge.fk_column] = None
        edge = self.graph.can_own(parent.kind, root_kind)
        values[edge.fk_column] = parent.id
        return values

    async def _apply_position_policy(
        self,
        payload: SubtreePayload,
        overrides: Dict[str, Any],
        position_policy: str
    ) -> Optional[int]:
        root_kind = payload.root.kind
        spec = self.graph.spec(root_kind)
        column_name = spec.position_column
        if column_name is None:
            return None

        fields = dict(payload.root_row.fields)
        fields.update(overrides)
        position = fields.get(column_name)
        owner = self.graph.owner_of(root_kind, fields)
        if owner is None or position is None:
            return position

        edge, parent = owner
        table = spec.table
        siblings = table.c[edge.fk_column] == parent.id
        position_column = table.c[column_name]

        if position_policy == "append":
            result = await self.session.execute(select(func.max(position_column)).where(siblings))
            current_max = result.scalar()
            position = 0 if current_max is None else current_max + 1
            overrides[column_name] = position
            return position

        result = await self.session.execute(
            select(func.count()).select_from(table).where(siblings).where(position_column == position)
        )
        if not result.scalar() or position_policy == "keep":
            return position

        if position_policy == "fail":
            raise Conflict(
                f"Position {position} is taken under {parent}",
                entity_type=root_kind.value,
                entity_id=payload.root.id,
                details={"position": position, "parent": str(parent)}
            )

        # shift: освобождаем позицию, сдвигая соседей вниз
        await self.session.execute(
            update(table)
            .where(siblings)
            .where(position_column >= position)
            .values({column_name: position_column + 1})
        )
        return position


class PurgeService:
    """Безвозвратное удаление в обход корзины"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.capture_engine = CaptureEngine(session, graph)
        self.relationship_service = RelationshipService(session, graph)
        self.audit = AuditLogger(session)

    async def purge(self, kind: EntityKind, entity_id: str) -> int:
        """Удаление поддерева вместе со всеми ребрами, касающимися его членов"""
        members = await self.capture_engine.members(kind, entity_id)
        removed_edges = await self.relationship_service.remove_for_members(members)

        table = self.graph.table_for(kind)
        await self.session.execute(delete(table).where(table.c.id == entity_id))

        await self.audit.record(
            AuditAction.ENTITY_PURGE, kind.value, entity_id,
            {"rows": len(members), "relationships": removed_edges}
        )
        logger.info(f"Purged {kind.value}:{entity_id} ({len(members)} rows, {removed_edges} relationships)")
        return len(members)

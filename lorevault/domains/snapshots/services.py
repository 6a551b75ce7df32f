import asyncio
import base64
import binascii
import gzip
import logging
import zlib
from typing import List

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.config import settings
from lorevault.core.exceptions import Conflict, NotFound, SerializationFailure
from lorevault.db.repositories.entity_repository import EntityRepository
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.db.repositories.snapshot_repository import SnapshotRepository
from lorevault.domains.audit.entities import AuditAction
from lorevault.domains.audit.services import AuditLogger
from lorevault.domains.graph.capabilities import CapabilityGuard
from lorevault.domains.graph.capture import CaptureEngine
from lorevault.domains.graph.entities import EntityGraph, EntityKind, EntityRef, entity_graph
from lorevault.domains.graph.schemas import CapturedRow, SubtreePayload
from lorevault.domains.graph.writer import SubtreeWriter, WriteReport
from lorevault.domains.snapshots.entities import Snapshot, SnapshotRestoreResult

logger = logging.getLogger(__name__)


def compress_payload(raw: bytes, level: int) -> bytes:
    return gzip.compress(raw, compresslevel=level)


def decompress_payload(data: bytes) -> bytes:
    return gzip.decompress(data)


class SnapshotService:
    """Сервис полных снимков вселенной"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.snapshot_repository = SnapshotRepository(session)
        self.entity_repository = EntityRepository(session, graph)
        self.relationship_repository = RelationshipRepository(session)
        self.capture_engine = CaptureEngine(session, graph)
        self.writer = SubtreeWriter(session, graph)
        self.capabilities = CapabilityGuard(session, graph)
        self.audit = AuditLogger(session)

    async def capture(self, universe_id: str, name: str = "") -> Snapshot:
        """Снимок вселенной: сериализация, gzip, base64"""
        await self.capabilities.require_snapshots()
        payload = await self.capture_engine.capture(
            EntityKind.UNIVERSE, universe_id, include_snapshots=False, include_attached=True
        )
        raw = payload.encode().encode("utf-8")
        # Сжатие в рабочем потоке, транзакция остается открытой
        compressed = await asyncio.to_thread(
            compress_payload, raw, settings.snapshot_compression_level
        )

        snapshot = Snapshot.create_snapshot(
            universe_id=universe_id,
            compressed_b64=base64.b64encode(compressed).decode("ascii"),
            size_bytes=len(raw),
            compressed_bytes=len(compressed),
            name=name
        )
        await self.snapshot_repository.create(snapshot)
        await self.audit.record(
            AuditAction.SNAPSHOT_CREATE, EntityKind.UNIVERSE.value, universe_id,
            {
                "snapshot_id": snapshot.id,
                "name": name,
                "rows": len(payload.rows),
                "attached_rows": len(payload.attached),
                "size_bytes": snapshot.size_bytes,
                "compressed_bytes": snapshot.compressed_bytes
            }
        )
        logger.info(
            f"Snapshot {snapshot.id} of universe {universe_id}: "
            f"{snapshot.size_bytes} bytes, {snapshot.compressed_bytes} compressed"
        )
        return snapshot

    async def list(self, universe_id: str) -> List[Snapshot]:
        """Снимки вселенной, новые первыми"""
        return await self.snapshot_repository.list_for_universe(universe_id)

    async def get(self, snapshot_id: str) -> Snapshot:
        snapshot = await self.snapshot_repository.get(snapshot_id)
        if snapshot is None:
            raise NotFound("Snapshot not found", entity_type="snapshot", entity_id=snapshot_id)
        return snapshot

    async def delete(self, snapshot_id: str) -> None:
        snapshot = await self.get(snapshot_id)
        await self.capabilities.require_snapshots()
        await self.snapshot_repository.delete(snapshot_id)
        await self.audit.record(
            AuditAction.SNAPSHOT_DELETE, EntityKind.UNIVERSE.value, snapshot.universe_id,
            {"snapshot_id": snapshot_id, "name": snapshot.name}
        )
        logger.info(f"Snapshot {snapshot_id} deleted")

    async def load_payload(self, snapshot: Snapshot) -> SubtreePayload:
        """Распаковка payload снимка"""
        try:
            compressed = base64.b64decode(snapshot.compressed_b64.encode("ascii"), validate=True)
            raw = await asyncio.to_thread(decompress_payload, compressed)
            text = raw.decode("utf-8")
        except (binascii.Error, OSError, EOFError, zlib.error, UnicodeError) as e:
            raise SerializationFailure(
                f"Snapshot payload is corrupted: {e}",
                entity_type="snapshot",
                entity_id=snapshot.id
            ) from e

        payload = SubtreePayload.decode(text)
        root = payload.root.to_ref()
        if root.kind != EntityKind.UNIVERSE or root.id != snapshot.universe_id:
            raise SerializationFailure(
                f"Snapshot payload belongs to {root}, expected universe:{snapshot.universe_id}",
                entity_type="snapshot",
                entity_id=snapshot.id
            )
        return payload

    async def restore(self, snapshot_id: str) -> SnapshotRestoreResult:
        """Полная замена текущего состояния вселенной и связанных досок PM содержимым снимка"""
        snapshot = await self.get(snapshot_id)
        await self.capabilities.require_snapshots()
        payload = await self.load_payload(snapshot)
        universe_id = snapshot.universe_id
        universe = EntityRef(EntityKind.UNIVERSE, universe_id)

        current_members = await self.capture_engine.members(EntityKind.UNIVERSE, universe_id)
        live_boards = await self.entity_repository.existing(payload.attached_roots())
        replaced = set(current_members)
        for board in live_boards:
            replaced |= await self.capture_engine.members(board.kind, board.id)
        await self.relationship_repository.delete_touching(replaced)

        await self._clear_children(universe)
        await self._overwrite_row(payload.root_row)
        for board in live_boards:
            await self._clear_children(board)
        for row in payload.attached:
            if row.ref in live_boards:
                await self._overwrite_row(row)

        descendants = payload.rows[1:]
        new_attached = [row for row in payload.attached if row.ref not in live_boards]
        existing = await self.writer.find_existing(descendants + new_attached)
        if existing:
            raise Conflict(
                f"{len(existing)} snapshot entities exist outside universe {universe_id}",
                entity_type=EntityKind.UNIVERSE.value,
                entity_id=universe_id,
                details={"existing": [str(ref) for ref in existing]}
            )

        report = WriteReport()
        if descendants:
            await self.writer.insert_rows(descendants, report=report)
        if new_attached:
            await self.writer.insert_rows(new_attached, report=report)
        await self.writer.reattach_relationships(payload.relationships, report=report)
        await self.writer.reapply_references(payload.references, report=report)

        restored_rows = report.restored_rows + 1 + len(live_boards)
        removed_rows = len(replaced) - 1 - len(live_boards)
        replaced_boards = [board.id for board in payload.attached_roots()]
        await self.audit.record(
            AuditAction.SNAPSHOT_RESTORE, EntityKind.UNIVERSE.value, universe_id,
            {
                "snapshot_id": snapshot_id,
                "restored_rows": restored_rows,
                "removed_rows": removed_rows,
                "replaced_boards": replaced_boards,
                "skipped_relationships": report.skipped_relationships
            }
        )
        logger.info(f"Universe {universe_id} restored from snapshot {snapshot_id}")
        return SnapshotRestoreResult(
            snapshot_id=snapshot_id,
            universe_id=universe_id,
            restored_rows=restored_rows,
            removed_rows=removed_rows,
            reattached_relationships=report.reattached_relationships,
            skipped_relationships=report.skipped_relationships,
            replaced_boards=replaced_boards
        )

    async def _clear_children(self, root: EntityRef) -> None:
        # Каскад удаляет всех потомков, сам корень остается на месте
        for edge in self.graph.children_edges(root.kind):
            table = self.graph.table_for(edge.child)
            await self.session.execute(delete(table).where(table.c[edge.fk_column] == root.id))

    async def _overwrite_row(self, row: CapturedRow) -> None:
        table = self.graph.table_for(row.kind)
        await self.session.execute(
            update(table)
            .where(table.c.id == row.id)
            .values({k: v for k, v in row.fields.items() if k != "id" and k in table.c})
        )

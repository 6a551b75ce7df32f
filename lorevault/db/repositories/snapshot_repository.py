from typing import Iterable, List, Optional, TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.db.models.archive import UniverseSnapshot as UniverseSnapshotModel

if TYPE_CHECKING:
    from lorevault.domains.snapshots.entities import Snapshot


class SnapshotRepository:
    """Репозиторий снимков вселенных"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, snapshot: "Snapshot") -> "Snapshot":
        """Создание снимка"""
        await self.session.execute(
            insert(UniverseSnapshotModel).values(
                id=snapshot.id,
                universe_id=snapshot.universe_id,
                name=snapshot.name,
                created_at=snapshot.created_at,
                size_bytes=snapshot.size_bytes,
                compressed_bytes=snapshot.compressed_bytes,
                compressed_b64=snapshot.compressed_b64
            )
        )
        return snapshot

    async def get(self, snapshot_id: str) -> Optional["Snapshot"]:
        result = await self.session.execute(
            select(UniverseSnapshotModel.__table__).where(UniverseSnapshotModel.id == snapshot_id)
        )
        row = result.mappings().first()
        return self._to_domain(row) if row else None

    async def list_for_universe(self, universe_id: str) -> List["Snapshot"]:
        """Снимки вселенной, новые первыми"""
        result = await self.session.execute(
            select(UniverseSnapshotModel.__table__)
            .where(UniverseSnapshotModel.universe_id == universe_id)
            .order_by(UniverseSnapshotModel.created_at.desc(), UniverseSnapshotModel.id.asc())
        )
        return [self._to_domain(row) for row in result.mappings().all()]

    async def existing_ids(self, snapshot_ids: Iterable[str]) -> List[str]:
        ids = sorted(set(snapshot_ids))
        if not ids:
            return []
        result = await self.session.execute(
            select(UniverseSnapshotModel.id).where(UniverseSnapshotModel.id.in_(ids))
        )
        return list(result.scalars().all())

    async def delete(self, snapshot_id: str) -> bool:
        result = await self.session.execute(
            delete(UniverseSnapshotModel).where(UniverseSnapshotModel.id == snapshot_id)
        )
        return result.rowcount > 0

    def _to_domain(self, row) -> "Snapshot":
        """Преобразование строки БД в доменную сущность"""
        from lorevault.domains.snapshots.entities import Snapshot

        return Snapshot(
            id=row["id"],
            universe_id=row["universe_id"],
            compressed_b64=row["compressed_b64"],
            name=row["name"],
            size_bytes=row["size_bytes"],
            compressed_bytes=row["compressed_bytes"],
            created_at=row["created_at"]
        )

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.db.models.archive import TrashEntry as TrashEntryModel

if TYPE_CHECKING:
    from lorevault.domains.trash.entities import TrashEntry


class TrashRepository:
    """Репозиторий записей корзины"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def put(self, entry: "TrashEntry") -> "TrashEntry":
        """Сохранение записи корзины"""
        await self.session.execute(
            insert(TrashEntryModel).values(
                id=entry.id,
                deleted_at=entry.deleted_at,
                target_type=entry.target_type,
                target_id=entry.target_id,
                parent_type=entry.parent_type,
                parent_id=entry.parent_id,
                display_name=entry.display_name,
                display_info=entry.display_info,
                payload_json=entry.payload_json
            )
        )
        return entry

    async def get(self, trash_id: str) -> Optional["TrashEntry"]:
        """Получение записи корзины вместе с payload"""
        result = await self.session.execute(
            select(TrashEntryModel).where(TrashEntryModel.id == trash_id)
        )
        db_entry = result.scalar_one_or_none()
        return self._to_domain(db_entry) if db_entry else None

    async def list(
        self,
        target_type: Optional[str] = None,
        parent_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List["TrashEntry"]:
        """Список записей, новые первыми; payload не загружается"""
        query = select(
            TrashEntryModel.id,
            TrashEntryModel.deleted_at,
            TrashEntryModel.target_type,
            TrashEntryModel.target_id,
            TrashEntryModel.parent_type,
            TrashEntryModel.parent_id,
            TrashEntryModel.display_name,
            TrashEntryModel.display_info
        )
        if target_type:
            query = query.where(TrashEntryModel.target_type == target_type)
        if parent_id:
            query = query.where(TrashEntryModel.parent_id == parent_id)

        result = await self.session.execute(
            query
            .order_by(TrashEntryModel.deleted_at.desc(), TrashEntryModel.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return [self._summary_to_domain(row) for row in result.mappings().all()]

    async def remove(self, trash_id: str) -> bool:
        result = await self.session.execute(
            delete(TrashEntryModel).where(TrashEntryModel.id == trash_id)
        )
        return result.rowcount > 0

    async def remove_all(self) -> int:
        result = await self.session.execute(delete(TrashEntryModel))
        return result.rowcount

    async def remove_older_than(self, cutoff: datetime) -> int:
        """Удаление записей, попавших в корзину раньше cutoff"""
        result = await self.session.execute(
            delete(TrashEntryModel).where(TrashEntryModel.deleted_at < cutoff)
        )
        return result.rowcount

    async def count(self, target_type: Optional[str] = None, parent_id: Optional[str] = None) -> int:
        """Число записей с теми же фильтрами, что и у list"""
        query = select(func.count(TrashEntryModel.id))
        if target_type:
            query = query.where(TrashEntryModel.target_type == target_type)
        if parent_id:
            query = query.where(TrashEntryModel.parent_id == parent_id)
        result = await self.session.execute(query)
        return result.scalar()

    def _summary_to_domain(self, row) -> "TrashEntry":
        from lorevault.domains.trash.entities import TrashEntry

        return TrashEntry(
            id=row["id"],
            target_type=row["target_type"],
            target_id=row["target_id"],
            payload_json="",
            parent_type=row["parent_type"],
            parent_id=row["parent_id"],
            display_name=row["display_name"],
            display_info=row["display_info"],
            deleted_at=row["deleted_at"]
        )

    def _to_domain(self, db_entry: TrashEntryModel) -> "TrashEntry":
        """Преобразование модели БД в доменную сущность"""
        from lorevault.domains.trash.entities import TrashEntry

        return TrashEntry(
            id=db_entry.id,
            target_type=db_entry.target_type,
            target_id=db_entry.target_id,
            payload_json=db_entry.payload_json,
            parent_type=db_entry.parent_type,
            parent_id=db_entry.parent_id,
            display_name=db_entry.display_name,
            display_info=db_entry.display_info,
            deleted_at=db_entry.deleted_at
        )

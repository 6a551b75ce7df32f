from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

if TYPE_CHECKING:
    from lorevault.domains.graph.entities import EntityGraph, EntityRef


class EntityRepository:
    """Чтение строк сущностей любого вида по ссылке"""

    def __init__(self, session: AsyncSession, graph: "EntityGraph"):
        self.session = session
        self.graph = graph

    async def load(self, ref: "EntityRef") -> Optional[Dict[str, Any]]:
        """Все поля строки сущности"""
        table = self.graph.table_for(ref.kind)
        result = await self.session.execute(select(table).where(table.c.id == ref.id))
        row = result.mappings().first()
        return dict(row) if row else None

    async def exists(self, ref: "EntityRef") -> bool:
        table = self.graph.table_for(ref.kind)
        result = await self.session.execute(select(table.c.id).where(table.c.id == ref.id))
        return result.scalar_one_or_none() is not None

    async def existing(self, refs: Iterable["EntityRef"]) -> List["EntityRef"]:
        """Какие из ссылок указывают на живые строки"""
        from lorevault.domains.graph.entities import EntityRef

        ids_by_kind = {}
        for ref in refs:
            ids_by_kind.setdefault(ref.kind, set()).add(ref.id)

        found: List["EntityRef"] = []
        for kind, ids in ids_by_kind.items():
            table = self.graph.table_for(kind)
            result = await self.session.execute(
                select(table.c.id).where(table.c.id.in_(sorted(ids))).order_by(table.c.id.asc())
            )
            found.extend(EntityRef(kind, entity_id) for entity_id in result.scalars().all())
        return found

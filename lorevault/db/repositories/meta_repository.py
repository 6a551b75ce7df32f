import json
from typing import List, Optional

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.db.models.archive import DbMeta as DbMetaModel


class MetaRepository:
    """Доступ к строке db_meta проекта"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def enabled_capabilities(self) -> Optional[List[str]]:
        """Список включенных возможностей; None, если строки db_meta нет"""
        result = await self.session.execute(
            select(DbMetaModel.enabled_capabilities_json).order_by(DbMetaModel.id.asc()).limit(1)
        )
        raw = result.scalar_one_or_none()
        if raw is None:
            return None
        value = json.loads(raw)
        return [str(item) for item in value] if isinstance(value, list) else []

    async def write(self, capabilities: List[str], container_kind: str = "tas_studio", app_version: str = "") -> None:
        await self.session.execute(
            insert(DbMetaModel).values(
                id=1,
                enabled_capabilities_json=json.dumps(list(capabilities)),
                container_kind=container_kind,
                app_version=app_version
            )
        )

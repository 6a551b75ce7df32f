import logging
from typing import FrozenSet, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.core.exceptions import CapabilityDisabled
from lorevault.db.repositories.meta_repository import MetaRepository
from lorevault.domains.graph.entities import EntityGraph, EntityKind, entity_graph

logger = logging.getLogger(__name__)

ALL_CAPABILITIES = frozenset({"worldbuilding", "timeline", "pm", "novel", "snapshots", "trash"})


class CapabilityGuard:
    """Проверка возможностей, включенных в db_meta проекта"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.meta_repository = MetaRepository(session)
        self._enabled: Optional[FrozenSet[str]] = None

    async def enabled(self) -> FrozenSet[str]:
        if self._enabled is None:
            capabilities = await self.meta_repository.enabled_capabilities()
            # Без строки db_meta включено все
            self._enabled = ALL_CAPABILITIES if capabilities is None else frozenset(capabilities)
        return self._enabled

    async def require(self, capability: str) -> None:
        if capability not in await self.enabled():
            logger.warning(f"Capability '{capability}' is disabled for this project")
            raise CapabilityDisabled(
                f"Capability '{capability}' is disabled",
                details={"capability": capability}
            )

    async def require_trash_for(self, kind: EntityKind) -> None:
        await self.require("trash")
        await self.require(self.graph.capability_for(kind))

    async def require_snapshots(self) -> None:
        await self.require("snapshots")

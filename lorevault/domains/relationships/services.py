import logging
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.core.exceptions import Conflict, InvalidOperation, NotFound
from lorevault.db.repositories.entity_repository import EntityRepository
from lorevault.db.repositories.relationship_repository import RelationshipRepository
from lorevault.domains.audit.entities import AuditAction
from lorevault.domains.audit.services import AuditLogger
from lorevault.domains.graph.entities import EntityGraph, EntityRef, entity_graph
from lorevault.domains.relationships.entities import Relationship, RelationshipType

logger = logging.getLogger(__name__)


class RelationshipService:
    """Сервис типизированных связей между сущностями"""

    def __init__(self, session: AsyncSession, graph: EntityGraph = entity_graph):
        self.session = session
        self.graph = graph
        self.entity_repository = EntityRepository(session, graph)
        self.relationship_repository = RelationshipRepository(session)
        self.audit = AuditLogger(session)

    # --- Виды связей ---

    async def create_type(self, name: str, directed: bool = False, description: str = "") -> RelationshipType:
        """Создание вида связи с уникальным именем"""
        name = name.strip()
        if not name:
            raise InvalidOperation("Relationship type name cannot be empty")
        if await self.relationship_repository.get_type_by_name(name):
            raise Conflict(f"Relationship type '{name}' already exists", details={"name": name})

        relationship_type = await self.relationship_repository.create_type(
            RelationshipType.create_type(name, directed=directed, description=description)
        )
        await self.audit.record(
            AuditAction.RELATIONSHIP_TYPE_CREATE, "relationship_type", relationship_type.id,
            {"name": name, "directed": directed}
        )
        return relationship_type

    async def get_type(self, type_id: str) -> RelationshipType:
        relationship_type = await self.relationship_repository.get_type(type_id)
        if relationship_type is None:
            raise NotFound("Relationship type not found", entity_type="relationship_type", entity_id=type_id)
        return relationship_type

    async def list_types(self) -> List[RelationshipType]:
        return await self.relationship_repository.list_types()

    async def delete_type(self, type_id: str) -> None:
        """Удаление вида связи, если на него не ссылается ни одно ребро"""
        relationship_type = await self.get_type(type_id)
        in_use = await self.relationship_repository.count_of_type(type_id)
        if in_use:
            raise Conflict(
                f"Relationship type '{relationship_type.name}' is used by {in_use} relationships",
                entity_type="relationship_type",
                entity_id=type_id,
                details={"in_use": in_use}
            )
        await self.relationship_repository.delete_type(type_id)
        await self.audit.record(
            AuditAction.RELATIONSHIP_TYPE_DELETE, "relationship_type", type_id,
            {"name": relationship_type.name}
        )

    # --- Ребра ---

    async def link(
        self,
        relationship_type_id: str,
        from_type: str,
        from_id: str,
        to_type: str,
        to_id: str,
        note: str = ""
    ) -> Relationship:
        """Создание ребра между двумя существующими сущностями"""
        relationship_type = await self.get_type(relationship_type_id)
        for kind_value, entity_id in ((from_type, from_id), (to_type, to_id)):
            ref = EntityRef(self.graph.parse_kind(kind_value), entity_id)
            if not await self.entity_repository.exists(ref):
                raise NotFound(f"{kind_value} not found", entity_type=kind_value, entity_id=entity_id)

        duplicate = await self.relationship_repository.find_equivalent(
            relationship_type.id, relationship_type.directed, from_type, from_id, to_type, to_id
        )
        if duplicate is not None:
            raise Conflict(
                "Equivalent relationship already exists",
                entity_type="relationship",
                entity_id=duplicate.id
            )

        relationship = await self.relationship_repository.create(Relationship.create_relationship(
            relationship_type.id, from_type, from_id, to_type, to_id, note=note
        ))
        await self.audit.record(
            AuditAction.RELATIONSHIP_LINK, "relationship", relationship.id,
            {
                "relationship_type_id": relationship_type.id,
                "from": f"{from_type}:{from_id}",
                "to": f"{to_type}:{to_id}"
            }
        )
        return relationship

    async def unlink(self, relationship_id: str) -> None:
        relationship = await self.relationship_repository.get(relationship_id)
        if relationship is None:
            raise NotFound("Relationship not found", entity_type="relationship", entity_id=relationship_id)
        await self.relationship_repository.delete(relationship_id)
        await self.audit.record(
            AuditAction.RELATIONSHIP_UNLINK, "relationship", relationship_id,
            {
                "relationship_type_id": relationship.relationship_type_id,
                "from": f"{relationship.from_type}:{relationship.from_id}",
                "to": f"{relationship.to_type}:{relationship.to_id}"
            }
        )

    async def query(
        self,
        entity_type: str,
        entity_id: str,
        relationship_type_id: Optional[str] = None
    ) -> List[Relationship]:
        """Ребра сущности; сущность может быть как from, так и to"""
        self.graph.parse_kind(entity_type)
        return await self.relationship_repository.for_entity(entity_type, entity_id, relationship_type_id)

    async def remove_for_members(self, members: Iterable[EntityRef]) -> int:
        """Удаление всех ребер, касающихся набора сущностей"""
        removed = await self.relationship_repository.delete_touching(members)
        if removed:
            logger.info(f"Removed {removed} relationships touching purged entities")
        return removed

    async def find_dangling(self) -> List[Relationship]:
        """Ребра, у которых один из концов больше не существует"""
        dangling = []
        for relationship in await self.relationship_repository.list_all():
            for kind_value, entity_id in (relationship.from_endpoint, relationship.to_endpoint):
                try:
                    ref = EntityRef(self.graph.parse_kind(kind_value), entity_id)
                except InvalidOperation:
                    dangling.append(relationship)
                    break
                if not await self.entity_repository.exists(ref):
                    dangling.append(relationship)
                    break
        if dangling:
            logger.warning(f"Found {len(dangling)} dangling relationships")
        return dangling

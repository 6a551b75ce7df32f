from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import and_, delete, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.db.models.archive import (
    Relationship as RelationshipModel,
    RelationshipType as RelationshipTypeModel
)
from lorevault.domains.graph.entities import EntityRef
from lorevault.domains.relationships.entities import Relationship, RelationshipType


class RelationshipRepository:
    """Репозиторий для работы со связями между сущностями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- Виды связей ---

    async def create_type(self, relationship_type: RelationshipType) -> RelationshipType:
        """Создание вида связи"""
        await self.session.execute(
            insert(RelationshipTypeModel).values(
                id=relationship_type.id,
                name=relationship_type.name,
                description=relationship_type.description,
                directed=relationship_type.directed
            )
        )
        return relationship_type

    async def get_type(self, type_id: str) -> Optional[RelationshipType]:
        result = await self.session.execute(
            select(RelationshipTypeModel).where(RelationshipTypeModel.id == type_id)
        )
        db_type = result.scalar_one_or_none()
        return self._type_to_domain(db_type) if db_type else None

    async def get_type_by_name(self, name: str) -> Optional[RelationshipType]:
        result = await self.session.execute(
            select(RelationshipTypeModel).where(RelationshipTypeModel.name == name)
        )
        db_type = result.scalar_one_or_none()
        return self._type_to_domain(db_type) if db_type else None

    async def list_types(self) -> List[RelationshipType]:
        result = await self.session.execute(
            select(RelationshipTypeModel).order_by(RelationshipTypeModel.name.asc())
        )
        return [self._type_to_domain(t) for t in result.scalars().all()]

    async def delete_type(self, type_id: str) -> bool:
        result = await self.session.execute(
            delete(RelationshipTypeModel).where(RelationshipTypeModel.id == type_id)
        )
        return result.rowcount > 0

    async def count_of_type(self, type_id: str) -> int:
        result = await self.session.execute(
            select(func.count(RelationshipModel.id))
            .where(RelationshipModel.relationship_type_id == type_id)
        )
        return result.scalar()

    # --- Ребра ---

    async def create(self, relationship: Relationship) -> Relationship:
        """Создание ребра"""
        # Core insert: ребро может возвращаться с прежним id после восстановления
        await self.session.execute(
            insert(RelationshipModel).values(
                id=relationship.id,
                relationship_type_id=relationship.relationship_type_id,
                from_type=relationship.from_type,
                from_id=relationship.from_id,
                to_type=relationship.to_type,
                to_id=relationship.to_id,
                note=relationship.note,
                created_at=relationship.created_at
            )
        )
        return await self.get(relationship.id)

    async def get(self, relationship_id: str) -> Optional[Relationship]:
        result = await self.session.execute(
            self._select_with_type().where(RelationshipModel.id == relationship_id)
        )
        row = result.first()
        return self._to_domain(*row) if row else None

    async def delete(self, relationship_id: str) -> bool:
        result = await self.session.execute(
            delete(RelationshipModel).where(RelationshipModel.id == relationship_id)
        )
        return result.rowcount > 0

    async def find_equivalent(
        self,
        type_id: str,
        directed: bool,
        from_type: str,
        from_id: str,
        to_type: str,
        to_id: str
    ) -> Optional[Relationship]:
        """Поиск такого же ребра; для ненаправленных связей (a,b) == (b,a)"""
        forward = and_(
            RelationshipModel.from_type == from_type,
            RelationshipModel.from_id == from_id,
            RelationshipModel.to_type == to_type,
            RelationshipModel.to_id == to_id
        )
        condition = forward
        if not directed:
            backward = and_(
                RelationshipModel.from_type == to_type,
                RelationshipModel.from_id == to_id,
                RelationshipModel.to_type == from_type,
                RelationshipModel.to_id == from_id
            )
            condition = or_(forward, backward)

        result = await self.session.execute(
            self._select_with_type()
            .where(RelationshipModel.relationship_type_id == type_id)
            .where(condition)
            .limit(1)
        )
        row = result.first()
        return self._to_domain(*row) if row else None

    async def for_entity(
        self,
        entity_type: str,
        entity_id: str,
        type_id: Optional[str] = None
    ) -> List[Relationship]:
        """Ребра, где сущность участвует как from или to (каждое один раз)"""
        query = self._select_with_type().where(
            or_(
                and_(RelationshipModel.from_type == entity_type, RelationshipModel.from_id == entity_id),
                and_(RelationshipModel.to_type == entity_type, RelationshipModel.to_id == entity_id)
            )
        )
        if type_id:
            query = query.where(RelationshipModel.relationship_type_id == type_id)

        result = await self.session.execute(
            query.order_by(RelationshipModel.created_at.asc(), RelationshipModel.id.asc())
        )
        return [self._to_domain(*row) for row in result.all()]

    async def touching(self, members: Iterable[EntityRef]) -> List[Relationship]:
        """Ребра, у которых хотя бы один конец входит в набор сущностей"""
        condition = self._touching_condition(members)
        if condition is None:
            return []
        result = await self.session.execute(
            self._select_with_type()
            .where(condition)
            .order_by(RelationshipModel.created_at.asc(), RelationshipModel.id.asc())
        )
        return [self._to_domain(*row) for row in result.all()]

    async def delete_touching(self, members: Iterable[EntityRef]) -> int:
        condition = self._touching_condition(members)
        if condition is None:
            return 0
        result = await self.session.execute(delete(RelationshipModel).where(condition))
        return result.rowcount

    async def list_all(self) -> List[Relationship]:
        result = await self.session.execute(
            self._select_with_type().order_by(RelationshipModel.created_at.asc())
        )
        return [self._to_domain(*row) for row in result.all()]

    def _touching_condition(self, members: Iterable[EntityRef]):
        ids_by_kind: Dict[str, Set[str]] = defaultdict(set)
        for ref in members:
            ids_by_kind[ref.kind.value].add(ref.id)
        if not ids_by_kind:
            return None

        clauses = []
        for kind, ids in ids_by_kind.items():
            clauses.append(and_(RelationshipModel.from_type == kind, RelationshipModel.from_id.in_(sorted(ids))))
            clauses.append(and_(RelationshipModel.to_type == kind, RelationshipModel.to_id.in_(sorted(ids))))
        return or_(*clauses)

    def _select_with_type(self):
        return select(
            RelationshipModel,
            RelationshipTypeModel.name,
            RelationshipTypeModel.directed
        ).join(
            RelationshipTypeModel,
            RelationshipTypeModel.id == RelationshipModel.relationship_type_id
        )

    def _to_domain(
        self,
        db_relationship: RelationshipModel,
        type_name: Optional[str] = None,
        directed: Optional[bool] = None
    ) -> Relationship:
        """Преобразование модели БД в доменную сущность"""
        return Relationship(
            id=db_relationship.id,
            relationship_type_id=db_relationship.relationship_type_id,
            from_type=db_relationship.from_type,
            from_id=db_relationship.from_id,
            to_type=db_relationship.to_type,
            to_id=db_relationship.to_id,
            note=db_relationship.note,
            created_at=db_relationship.created_at,
            type_name=type_name,
            directed=directed
        )

    def _type_to_domain(self, db_type: RelationshipTypeModel) -> RelationshipType:
        return RelationshipType(
            id=db_type.id,
            name=db_type.name,
            description=db_type.description,
            directed=db_type.directed
        )

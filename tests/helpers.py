from typing import Any, Dict, List

from sqlalchemy import select

from lorevault.db.models import Relationship as RelationshipModel
from lorevault.domains.graph.entities import EntityKind, entity_graph


async def dump_tables(session) -> Dict[str, List[Dict[str, Any]]]:
    """Logical content of every entity table and the relationship table."""
    state = {}
    for kind in entity_graph.kinds():
        table = entity_graph.table_for(kind)
        result = await session.execute(select(table).order_by(table.c.id))
        state[kind.value] = [dict(row) for row in result.mappings().all()]
    relationships = RelationshipModel.__table__
    result = await session.execute(select(relationships).order_by(relationships.c.id))
    state["relationships"] = [dict(row) for row in result.mappings().all()]
    return state


async def fetch_row(session, kind: EntityKind, entity_id: str):
    table = entity_graph.table_for(kind)
    result = await session.execute(select(table).where(table.c.id == entity_id))
    row = result.mappings().first()
    return dict(row) if row else None

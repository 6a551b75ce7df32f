from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.api.http.errors import to_http
from lorevault.core.db import get_db, unit_of_work
from lorevault.core.exceptions import VaultError
from lorevault.domains.graph.entities import entity_graph
from lorevault.domains.trash.schemas import MoveToTrashRequest, PurgeResponse, TrashEntrySummary
from lorevault.domains.trash.services import PurgeService, TrashService

router = APIRouter(prefix="/entities", tags=["entities"])


@router.delete("/{kind}/{entity_id}", response_model=TrashEntrySummary)
async def move_to_trash(
    kind: str,
    entity_id: str,
    request: Optional[MoveToTrashRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """Удаление сущности в корзину вместе с поддеревом"""
    request = request or MoveToTrashRequest()
    try:
        entity_kind = entity_graph.parse_kind(kind)
        async with unit_of_work(db):
            entry = await TrashService(db).move_to_trash(
                entity_kind,
                entity_id,
                display_name=request.display_name,
                display_info=request.display_info
            )
    except VaultError as e:
        raise to_http(e)
    return TrashEntrySummary.model_validate(entry)


@router.delete("/{kind}/{entity_id}/purge", response_model=PurgeResponse)
async def purge_entity(kind: str, entity_id: str, db: AsyncSession = Depends(get_db)):
    """Безвозвратное удаление в обход корзины"""
    try:
        entity_kind = entity_graph.parse_kind(kind)
        async with unit_of_work(db):
            removed = await PurgeService(db).purge(entity_kind, entity_id)
    except VaultError as e:
        raise to_http(e)
    return PurgeResponse(entity_type=entity_kind.value, entity_id=entity_id, removed_rows=removed)

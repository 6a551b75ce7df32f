from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.api.http.errors import to_http
from lorevault.core.db import get_db, unit_of_work
from lorevault.core.exceptions import VaultError
from lorevault.domains.trash.schemas import (
    CleanupResponse, RestoreRequest, RestoreResponse, TrashEntryDetail,
    TrashEntrySummary, TrashListResponse
)
from lorevault.domains.trash.services import TrashService

router = APIRouter(prefix="/trash", tags=["trash"])


@router.get("/", response_model=TrashListResponse)
async def list_trash(
    target_type: Optional[str] = Query(None),
    parent_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """Содержимое корзины, новые записи первыми"""
    trash_service = TrashService(db)
    try:
        entries = await trash_service.list_entries(
            target_type=target_type,
            parent_id=parent_id,
            limit=per_page,
            offset=(page - 1) * per_page
        )
        total = await trash_service.count(target_type=target_type, parent_id=parent_id)
    except VaultError as e:
        raise to_http(e)

    return TrashListResponse(
        entries=[TrashEntrySummary.model_validate(entry) for entry in entries],
        total=total
    )


@router.get("/{trash_id}", response_model=TrashEntryDetail)
async def get_trash_entry(trash_id: str, db: AsyncSession = Depends(get_db)):
    """Запись корзины вместе с захваченным поддеревом"""
    trash_service = TrashService(db)
    try:
        entry = await trash_service.get_entry(trash_id)
        payload = entry.payload()
    except VaultError as e:
        raise to_http(e)

    summary = TrashEntrySummary.model_validate(entry)
    return TrashEntryDetail(**summary.model_dump(), payload=payload)


@router.post("/{trash_id}/restore", response_model=RestoreResponse)
async def restore_trash_entry(
    trash_id: str,
    request: Optional[RestoreRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """Восстановление записи корзины"""
    request = request or RestoreRequest()
    try:
        async with unit_of_work(db):
            result = await TrashService(db).restore(
                trash_id,
                orphan_policy=request.orphan_policy,
                position_policy=request.position_policy
            )
    except VaultError as e:
        raise to_http(e)

    return RestoreResponse(
        trash_id=result.trash_id,
        root_type=result.root.kind.value,
        root_id=result.root.id,
        parent_type=result.parent.kind.value if result.parent else None,
        parent_id=result.parent.id if result.parent else None,
        restored_rows=result.restored_rows,
        reattached_relationships=result.reattached_relationships,
        skipped_relationships=result.skipped_relationships,
        reattached_to_ancestor=result.reattached_to_ancestor,
        position=result.position
    )


@router.delete("/{trash_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trash_entry(trash_id: str, db: AsyncSession = Depends(get_db)):
    """Безвозвратное удаление записи корзины"""
    try:
        async with unit_of_work(db):
            await TrashService(db).permanent_delete(trash_id)
    except VaultError as e:
        raise to_http(e)


@router.delete("/", response_model=CleanupResponse)
async def empty_trash(db: AsyncSession = Depends(get_db)):
    """Очистка корзины"""
    try:
        async with unit_of_work(db):
            removed = await TrashService(db).empty_trash()
    except VaultError as e:
        raise to_http(e)
    return CleanupResponse(removed=removed)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_trash(
    days: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """Удаление записей старше срока хранения"""
    try:
        async with unit_of_work(db):
            removed = await TrashService(db).cleanup_old_entries(days)
    except VaultError as e:
        raise to_http(e)
    return CleanupResponse(removed=removed)

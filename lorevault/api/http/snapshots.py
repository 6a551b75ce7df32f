from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lorevault.api.http.errors import to_http
from lorevault.core.db import get_db, unit_of_work
from lorevault.core.exceptions import VaultError
from lorevault.domains.snapshots.schemas import (
    SnapshotCreate, SnapshotListResponse, SnapshotResponse, SnapshotRestoreResponse
)
from lorevault.domains.snapshots.services import SnapshotService

router = APIRouter(prefix="/snapshots", tags=["snapshots"])


@router.post("/", response_model=SnapshotResponse, status_code=status.HTTP_201_CREATED)
async def create_snapshot(snapshot_data: SnapshotCreate, db: AsyncSession = Depends(get_db)):
    """Создание снимка вселенной"""
    try:
        async with unit_of_work(db):
            snapshot = await SnapshotService(db).capture(snapshot_data.universe_id, snapshot_data.name)
    except VaultError as e:
        raise to_http(e)
    return SnapshotResponse.model_validate(snapshot)


@router.get("/", response_model=SnapshotListResponse)
async def list_snapshots(universe_id: str = Query(...), db: AsyncSession = Depends(get_db)):
    """Снимки вселенной, новые первыми"""
    snapshots = await SnapshotService(db).list(universe_id)
    return SnapshotListResponse(
        snapshots=[SnapshotResponse.model_validate(s) for s in snapshots],
        total=len(snapshots)
    )


@router.get("/{snapshot_id}", response_model=SnapshotResponse)
async def get_snapshot(snapshot_id: str, db: AsyncSession = Depends(get_db)):
    try:
        snapshot = await SnapshotService(db).get(snapshot_id)
    except VaultError as e:
        raise to_http(e)
    return SnapshotResponse.model_validate(snapshot)


@router.post("/{snapshot_id}/restore", response_model=SnapshotRestoreResponse)
async def restore_snapshot(snapshot_id: str, db: AsyncSession = Depends(get_db)):
    """Полная замена вселенной содержимым снимка"""
    try:
        async with unit_of_work(db):
            result = await SnapshotService(db).restore(snapshot_id)
    except VaultError as e:
        raise to_http(e)
    return SnapshotRestoreResponse.model_validate(result)


@router.delete("/{snapshot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_snapshot(snapshot_id: str, db: AsyncSession = Depends(get_db)):
    try:
        async with unit_of_work(db):
            await SnapshotService(db).delete(snapshot_id)
    except VaultError as e:
        raise to_http(e)

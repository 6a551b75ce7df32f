from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class SnapshotCreate(BaseModel):
    """Схема для создания снимка"""
    universe_id: str
    name: str = Field(default="", max_length=255)


class SnapshotResponse(BaseModel):
    """Схема снимка без payload"""
    id: str
    universe_id: str
    name: str
    created_at: datetime
    size_bytes: int
    compressed_bytes: int

    model_config = ConfigDict(from_attributes=True)


class SnapshotListResponse(BaseModel):
    snapshots: List[SnapshotResponse]
    total: int


class SnapshotRestoreResponse(BaseModel):
    snapshot_id: str
    universe_id: str
    restored_rows: int
    removed_rows: int
    reattached_relationships: List[str]
    skipped_relationships: List[str]
    replaced_boards: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from lorevault.domains.graph.schemas import SubtreePayload


class TrashEntrySummary(BaseModel):
    """Схема записи корзины в списке"""
    id: str
    deleted_at: datetime
    target_type: str
    target_id: str
    parent_type: Optional[str] = None
    parent_id: Optional[str] = None
    display_name: str
    display_info: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TrashEntryDetail(TrashEntrySummary):
    """Схема записи корзины вместе с захваченным поддеревом"""
    payload: SubtreePayload


class TrashListResponse(BaseModel):
    entries: List[TrashEntrySummary]
    total: int


class MoveToTrashRequest(BaseModel):
    display_name: Optional[str] = Field(None, max_length=255)
    display_info: Optional[str] = None


class RestoreRequest(BaseModel):
    """Политики восстановления; пустые значения берутся из настроек"""
    orphan_policy: Optional[Literal["fail", "nearest_ancestor"]] = None
    position_policy: Optional[Literal["keep", "shift", "append", "fail"]] = None


class RestoreResponse(BaseModel):
    trash_id: str
    root_type: str
    root_id: str
    parent_type: Optional[str] = None
    parent_id: Optional[str] = None
    restored_rows: int
    reattached_relationships: List[str]
    skipped_relationships: List[str]
    reattached_to_ancestor: bool
    position: Optional[int] = None


class CleanupResponse(BaseModel):
    removed: int


class PurgeResponse(BaseModel):
    entity_type: str
    entity_id: str
    removed_rows: int

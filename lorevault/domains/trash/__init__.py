from lorevault.domains.trash.entities import RestoreResult, TrashEntry
from lorevault.domains.trash.schemas import (
    CleanupResponse, MoveToTrashRequest, PurgeResponse, RestoreRequest,
    RestoreResponse, TrashEntryDetail, TrashEntrySummary, TrashListResponse
)

__all__ = [
    "RestoreResult", "TrashEntry",
    "CleanupResponse", "MoveToTrashRequest", "PurgeResponse", "RestoreRequest",
    "RestoreResponse", "TrashEntryDetail", "TrashEntrySummary", "TrashListResponse"
]

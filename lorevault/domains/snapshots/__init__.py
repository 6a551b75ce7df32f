from lorevault.domains.snapshots.entities import Snapshot, SnapshotRestoreResult
from lorevault.domains.snapshots.schemas import (
    SnapshotCreate, SnapshotListResponse, SnapshotResponse, SnapshotRestoreResponse
)

__all__ = [
    "Snapshot", "SnapshotRestoreResult",
    "SnapshotCreate", "SnapshotListResponse", "SnapshotResponse", "SnapshotRestoreResponse"
]

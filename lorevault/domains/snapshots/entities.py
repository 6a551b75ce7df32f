import uuid
from datetime import datetime
from typing import List, Optional


class Snapshot:
    """Снимок вселенной на момент времени"""

    def __init__(
        self,
        id: str,
        universe_id: str,
        compressed_b64: str,
        name: str = "",
        size_bytes: int = 0,
        compressed_bytes: int = 0,
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.universe_id = universe_id
        self.compressed_b64 = compressed_b64
        self.name = name
        self.size_bytes = size_bytes
        self.compressed_bytes = compressed_bytes
        self.created_at = created_at or datetime.utcnow()

    @classmethod
    def create_snapshot(
        cls,
        universe_id: str,
        compressed_b64: str,
        size_bytes: int,
        compressed_bytes: int,
        name: str = ""
    ) -> "Snapshot":
        """Создание нового снимка"""
        return cls(
            id=f"snap-{uuid.uuid4()}",
            universe_id=universe_id,
            compressed_b64=compressed_b64,
            name=name,
            size_bytes=size_bytes,
            compressed_bytes=compressed_bytes
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Snapshot):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"Snapshot(id={self.id}, universe_id={self.universe_id}, size={self.size_bytes})"


class SnapshotRestoreResult:
    """Итог восстановления снимка"""

    def __init__(
        self,
        snapshot_id: str,
        universe_id: str,
        restored_rows: int = 0,
        removed_rows: int = 0,
        reattached_relationships: Optional[List[str]] = None,
        skipped_relationships: Optional[List[str]] = None,
        replaced_boards: Optional[List[str]] = None
    ):
        self.snapshot_id = snapshot_id
        self.universe_id = universe_id
        self.restored_rows = restored_rows
        self.removed_rows = removed_rows
        self.reattached_relationships = reattached_relationships or []
        self.skipped_relationships = skipped_relationships or []
        self.replaced_boards = replaced_boards or []

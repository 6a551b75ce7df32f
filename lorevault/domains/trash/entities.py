import uuid
from datetime import datetime
from typing import List, Optional

from lorevault.domains.graph.entities import EntityRef
from lorevault.domains.graph.schemas import SubtreePayload


class TrashEntry:
    """Захваченное удаление: корень поддерева и его полный payload"""

    def __init__(
        self,
        id: str,
        target_type: str,
        target_id: str,
        payload_json: str,
        parent_type: Optional[str] = None,
        parent_id: Optional[str] = None,
        display_name: str = "",
        display_info: Optional[str] = None,
        deleted_at: Optional[datetime] = None
    ):
        self.id = id
        self.target_type = target_type
        self.target_id = target_id
        self.payload_json = payload_json
        self.parent_type = parent_type
        self.parent_id = parent_id
        self.display_name = display_name
        self.display_info = display_info
        self.deleted_at = deleted_at or datetime.utcnow()

    @classmethod
    def create_entry(
        cls,
        payload: SubtreePayload,
        display_name: str = "",
        display_info: Optional[str] = None
    ) -> "TrashEntry":
        """Создание записи корзины из захваченного поддерева"""
        parent = payload.parent
        return cls(
            id=f"trash-{uuid.uuid4()}",
            target_type=payload.root.kind.value,
            target_id=payload.root.id,
            payload_json=payload.encode(),
            parent_type=parent.kind.value if parent else None,
            parent_id=parent.id if parent else None,
            display_name=display_name,
            display_info=display_info
        )

    def payload(self) -> SubtreePayload:
        return SubtreePayload.decode(self.payload_json)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TrashEntry):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"TrashEntry(id={self.id}, target={self.target_type}:{self.target_id})"


class RestoreResult:
    """Итог восстановления из корзины"""

    def __init__(
        self,
        trash_id: str,
        root: EntityRef,
        parent: Optional[EntityRef] = None,
        restored_rows: int = 0,
        reattached_relationships: Optional[List[str]] = None,
        skipped_relationships: Optional[List[str]] = None,
        reattached_to_ancestor: bool = False,
        position: Optional[int] = None
    ):
        self.trash_id = trash_id
        self.root = root
        self.parent = parent
        self.restored_rows = restored_rows
        self.reattached_relationships = reattached_relationships or []
        self.skipped_relationships = skipped_relationships or []
        self.reattached_to_ancestor = reattached_to_ancestor
        self.position = position

    def __repr__(self) -> str:
        return (
            f"RestoreResult(root={self.root}, rows={self.restored_rows}, "
            f"skipped={len(self.skipped_relationships)})"
        )

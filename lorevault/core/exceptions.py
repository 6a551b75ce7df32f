from typing import Any, Dict, Optional


class VaultError(Exception):
    """Базовое исключение подсистемы корзины, снапшотов и аудита"""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.details = dict(details or {})
        if entity_type is not None:
            self.details.setdefault("entity_type", entity_type)
        if entity_id is not None:
            self.details.setdefault("entity_id", entity_id)


class NotFound(VaultError):
    """Цель, запись корзины или снапшот не найдены"""


class Conflict(VaultError):
    """Восстановление перезаписало бы живые данные"""


class OrphanParent(VaultError):
    """Записанный родитель отсутствует на момент восстановления"""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        parent_type: Optional[str] = None,
        parent_id: Optional[str] = None
    ):
        super().__init__(
            message,
            entity_type=entity_type,
            entity_id=entity_id,
            details={"parent_type": parent_type, "parent_id": parent_id}
        )
        self.parent_type = parent_type
        self.parent_id = parent_id


class SerializationFailure(VaultError):
    """Payload не удалось построить или разобрать"""


class StoreFailure(VaultError):
    """Хранилище недоступно или транзакция прервана"""


class SchemaMismatch(StoreFailure):
    """Каскадные внешние ключи схемы не совпадают с графом владения"""


class CapabilityDisabled(VaultError):
    """Операция запрещена настройками проекта (db_meta)"""


class InvalidOperation(VaultError):
    """Некорректный запрос к подсистеме"""

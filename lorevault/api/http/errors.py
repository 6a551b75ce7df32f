import logging

from fastapi import HTTPException, status

from lorevault.core.exceptions import (
    CapabilityDisabled, Conflict, InvalidOperation, NotFound, OrphanParent,
    SerializationFailure, StoreFailure, VaultError
)

logger = logging.getLogger(__name__)

# Порядок важен: подклассы раньше базовых классов
_STATUS_BY_ERROR = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (OrphanParent, status.HTTP_409_CONFLICT),
    (Conflict, status.HTTP_409_CONFLICT),
    (SerializationFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StoreFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (CapabilityDisabled, status.HTTP_403_FORBIDDEN),
    (InvalidOperation, status.HTTP_400_BAD_REQUEST),
]


def to_http(exc: VaultError) -> HTTPException:
    """Преобразование доменной ошибки в HTTPException"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_class, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            status_code = code
            break
    if status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return HTTPException(
        status_code=status_code,
        detail={"error": type(exc).__name__, "message": exc.message, **exc.details}
    )

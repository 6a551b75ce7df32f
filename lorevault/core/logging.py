import logging
from typing import Optional

from lorevault.config import settings

AUDIT_FALLBACK_LOGGER = "lorevault.audit.fallback"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None, audit_fallback_log: Optional[str] = None) -> None:
    """Настройка логирования приложения"""
    level = (level or settings.log_level).upper()
    logging.basicConfig(level=level, format=_FORMAT)
    logging.getLogger("lorevault").setLevel(level)

    fallback_path = audit_fallback_log or settings.audit_fallback_log
    if fallback_path:
        fallback_logger = logging.getLogger(AUDIT_FALLBACK_LOGGER)
        already_attached = any(
            isinstance(h, logging.FileHandler) and h.baseFilename.endswith(fallback_path)
            for h in fallback_logger.handlers
        )
        if not already_attached:
            handler = logging.FileHandler(fallback_path, encoding="utf-8")
            handler.setFormatter(logging.Formatter(_FORMAT))
            fallback_logger.addHandler(handler)

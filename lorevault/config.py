from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./lorevault.db"
    database_echo: bool = False
    # Схема обычно создается внешним слоем миграций
    create_schema: bool = True

    log_level: str = "INFO"
    audit_fallback_log: Optional[str] = None

    # Политика хранения корзины (дней)
    trash_retention_days: int = Field(14, ge=0)
    cleanup_on_startup: bool = True

    snapshot_compression_level: int = Field(6, ge=0, le=9)

    orphan_policy: Literal["fail", "nearest_ancestor"] = "fail"
    position_policy: Literal["keep", "shift", "append", "fail"] = "shift"

    model_config = {"env_file": ".env", "env_prefix": "LOREVAULT_", "extra": "ignore"}


settings = Settings()

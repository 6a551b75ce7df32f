import time

from sqlalchemy.orm import declarative_base

# Базовый класс для моделей
Base = declarative_base()


def epoch_now() -> int:
    """Текущее время в секундах (как unixepoch() в SQLite)"""
    return int(time.time())

"""
Database infrastructure package.

Экспортирует основные функции и классы для работы с базой данных.
"""

from .repositories import AlarmsRepository
from .session import Database
from .models import Base, AlarmRecord

__all__ = [
    # Репозитории
    "AlarmsRepository",
    # Database
    "Database",
    # Модели
    "Base",
    "AlarmRecord",
]

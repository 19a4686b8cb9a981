"""
Репозитории для работы с моделями базы данных.

Каждый репозиторий принимает SQLAlchemy Session и отдаёт доменные объекты.
"""

from .alarms_repository import AlarmsRepository

__all__ = [
    "AlarmsRepository",
]

"""
Схемы API для Alarm Keeper.

Организованы по доменам для удобства навигации и поддержки.
Каждый модуль соответствует одному или группе связанных эндпоинтов.

Структура:
- alarms: Схемы для будильников
"""

from api.schemas.alarms import (
    AlarmRequest,
    SnoozeRequest,
    AlarmResponse,
    AlarmListResponse,
    AlarmItemResponse,
    AlarmCreatedResponse,
    DeletedCountResponse,
)

__all__ = [
    "AlarmRequest",
    "SnoozeRequest",
    "AlarmResponse",
    "AlarmListResponse",
    "AlarmItemResponse",
    "AlarmCreatedResponse",
    "DeletedCountResponse",
]

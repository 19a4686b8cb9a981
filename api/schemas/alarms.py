# Alarm Keeper - Personal Alarm Service
# Copyright (C) 2025-2026 Olga Kalinina

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.

"""
Схемы для эндпоинта /alarms.

Содержит модели для создания, редактирования и откладывания будильников,
а также формат ответа с будильником.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from models.alarm_models import MAX_SNOOZE_MINUTES, Alarm, AlarmSpec


class AlarmRequest(BaseModel):
    """
    Создание или полное редактирование будильника.

    Attributes:
        fire_at: Время срабатывания. Для повторяющегося будильника важны
            только часы и минуты — дата пересчитывается на сервере.
        message: Текст, который увидит пользователь.
        is_recurring: Повторяющийся ли будильник.
        recurrence_kind: "Daily", "Weekly" или "Monthly" (старый код 0 = "Weekly").
        week_days: Дни недели 0–6 (воскресенье = 0), для "Weekly".
        month_days: Числа месяца 1–31, для "Monthly".

    Notes:
        - Дни принимаются числами или строками, мусор отбрасывается
        - Дни, не подходящие к типу повторения, игнорируются
    """
    fire_at: datetime = Field(..., description="Время срабатывания (ISO)")
    message: str = Field("", description="Текст будильника")
    is_recurring: bool = False
    recurrence_kind: Optional[Any] = Field(None, description='"Daily" | "Weekly" | "Monthly"')
    week_days: Optional[List[Any]] = None
    month_days: Optional[List[Any]] = None

    def to_spec(self) -> AlarmSpec:
        return AlarmSpec(
            base_time=self.fire_at,
            message=self.message,
            is_recurring=self.is_recurring,
            recurrence_kind=self.recurrence_kind,
            week_days=self.week_days,
            month_days=self.month_days,
        )


class SnoozeRequest(BaseModel):
    """
    Запрос на откладывание будильника.

    Attributes:
        minutes: На сколько минут отложить (от 1 до MAX_SNOOZE_MINUTES),
            отсчёт от текущего момента.
    """
    minutes: int = Field(..., ge=1, le=MAX_SNOOZE_MINUTES, description="Минуты (1..MAX_SNOOZE_MINUTES)")


class AlarmResponse(BaseModel):
    """Будильник в ответе API."""
    id: str
    owner_id: str
    fire_at: datetime
    message: str
    status: str
    is_recurring: bool
    recurrence_kind: Optional[str] = None
    week_days: List[int] = []
    month_days: List[int] = []
    original_message: Optional[str] = None
    schedule_anchor: Optional[datetime] = None

    @classmethod
    def from_alarm(cls, alarm: Alarm) -> "AlarmResponse":
        return cls(
            id=alarm.id,
            owner_id=alarm.owner_id,
            fire_at=alarm.fire_at,
            message=alarm.message,
            status=alarm.status.value,
            is_recurring=alarm.is_recurring,
            recurrence_kind=alarm.recurrence_kind.value if alarm.recurrence_kind else None,
            week_days=alarm.week_days,
            month_days=alarm.month_days,
            original_message=alarm.original_message,
            schedule_anchor=alarm.schedule_anchor,
        )


class AlarmListResponse(BaseModel):
    success: bool = True
    alarms: List[AlarmResponse]


class AlarmItemResponse(BaseModel):
    success: bool = True
    alarm: AlarmResponse


class AlarmCreatedResponse(BaseModel):
    success: bool = True
    inserted_id: str
    alarm: AlarmResponse


class DeletedCountResponse(BaseModel):
    success: bool = True
    deleted_count: int

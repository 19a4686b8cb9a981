from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, List, Optional

from models.alarm_enums import AlarmStatus, RecurrenceKind

# Дальше недели не откладываем
MAX_SNOOZE_MINUTES = 7 * 24 * 60


@dataclass
class Alarm:
    """Будильник пользователя в том виде, в каком с ним работает ядро."""
    owner_id: str
    fire_at: datetime
    message: str = ""
    status: AlarmStatus = AlarmStatus.ACTIVE
    is_recurring: bool = False
    recurrence_kind: Optional[RecurrenceKind] = None
    week_days: List[int] = field(default_factory=list)
    month_days: List[int] = field(default_factory=list)
    original_message: Optional[str] = None
    schedule_anchor: Optional[datetime] = None
    id: Optional[str] = None
    version: int = 0

    @property
    def is_snoozed(self) -> bool:
        return self.schedule_anchor is not None

    def clear_snooze(self) -> None:
        self.original_message = None
        self.schedule_anchor = None

    def copy(self) -> "Alarm":
        return replace(self, week_days=list(self.week_days), month_days=list(self.month_days))


@dataclass
class AlarmSpec:
    """
    Входные данные для создания/редактирования будильника.

    Дни недели и месяца приходят «как есть» из клиентского payload
    (числа, строки, мусор) и разбираются ядром.
    """
    base_time: datetime
    message: str = ""
    is_recurring: bool = False
    recurrence_kind: Any = None
    week_days: Optional[List[Any]] = None
    month_days: Optional[List[Any]] = None

from enum import Enum
from typing import Any, List, Optional


class AlarmStatus(str, Enum):
    """Статус будильника. «Отложен» — это ACTIVE с заполненными snooze-полями."""
    ACTIVE = "Active"
    FIRED = "Fired"

    @classmethod
    def from_value(cls, value: Any) -> "AlarmStatus":
        """
        Приводит сохранённое значение статуса к enum.

        Принимает текущие значения, старые строковые ("Ativo", "DisparadoVisto")
        и числовые коды: 0 — активный, 1/2/3 — сработавший.

        Raises:
            ValueError: Если значение не соответствует ни одному статусу.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key == member.value or key in _STATUS_SYNONYMS[member]:
                return member
        raise ValueError(f"Неизвестный статус будильника: {value!r}")

    def stored_values(self) -> List[str]:
        """Все представления статуса, которые могут лежать в БД."""
        return [self.value, *_STATUS_SYNONYMS[self]]


_STATUS_SYNONYMS = {
    AlarmStatus.ACTIVE: ("Ativo", "0"),
    AlarmStatus.FIRED: ("DisparadoVisto", "1", "2", "3"),
}


class RecurrenceKind(str, Enum):
    """Тип повторения будильника."""
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"

    @classmethod
    def parse(cls, value: Any) -> Optional["RecurrenceKind"]:
        """
        Мягко приводит тип повторения к enum.

        Старый код 0 означает WEEKLY. Неизвестные значения и None дают None.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        return _KIND_ALIASES.get(key)


_KIND_ALIASES = {
    "daily": RecurrenceKind.DAILY,
    "diariamente": RecurrenceKind.DAILY,
    "weekly": RecurrenceKind.WEEKLY,
    "semanalmente": RecurrenceKind.WEEKLY,
    "semanal": RecurrenceKind.WEEKLY,
    "0": RecurrenceKind.WEEKLY,
    "monthly": RecurrenceKind.MONTHLY,
    "mensalmente": RecurrenceKind.MONTHLY,
}

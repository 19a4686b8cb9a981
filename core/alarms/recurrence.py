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
Расчёт следующего срабатывания повторяющегося будильника.

Чистые функции, без I/O. Время суток берётся из якоря (anchor_time),
а отсчёт дат всегда начинается с текущего дня — так будильник «догоняет»
расписание после долгого простоя сервера за несколько шагов.
"""

import calendar
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

from models.alarm_enums import RecurrenceKind

WEEK_DAY_RANGE = (0, 6)   # 0 = воскресенье
MONTH_DAY_RANGE = (1, 31)


def parse_day_set(raw: Optional[Iterable[Any]], low: int, high: int) -> List[int]:
    """
    Превращает «грязный» список дней из payload в отсортированный список int.

    Нечисловые значения и значения вне [low, high] отбрасываются, дубликаты
    схлопываются. Ошибок не бросает.

    Examples:
        >>> parse_day_set(["3", 1, "x", 1, 9], 0, 6)
        [1, 3]
    """
    if raw is None or isinstance(raw, (str, bytes)):
        return []

    days = set()
    for item in raw:
        if isinstance(item, bool):
            continue
        try:
            day = int(str(item).strip())
        except (TypeError, ValueError):
            continue
        if low <= day <= high:
            days.add(day)
    return sorted(days)


def parse_week_days(raw: Optional[Iterable[Any]]) -> List[int]:
    return parse_day_set(raw, *WEEK_DAY_RANGE)


def parse_month_days(raw: Optional[Iterable[Any]]) -> List[int]:
    return parse_day_set(raw, *MONTH_DAY_RANGE)


def sunday_based_weekday(moment: datetime) -> int:
    """Номер дня недели, где воскресенье = 0, суббота = 6."""
    return (moment.weekday() + 1) % 7


def _at_anchor_time(moment: datetime, anchor_time: datetime) -> datetime:
    return moment.replace(hour=anchor_time.hour, minute=anchor_time.minute, second=0, microsecond=0)


def _first_day_of_next_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1, day=1)
    return moment.replace(month=moment.month + 1, day=1)


def _next_month_on_day(moment: datetime, day: int) -> datetime:
    """Первый из следующих месяцев, в котором есть число `day`."""
    candidate = _first_day_of_next_month(moment)
    while calendar.monthrange(candidate.year, candidate.month)[1] < day:
        candidate = _first_day_of_next_month(candidate)
    return candidate.replace(day=day)


def _advance_weekly(candidate: datetime, week_days: List[int]) -> datetime:
    today = sunday_based_weekday(candidate)
    later = [day for day in week_days if day > today]
    if later:
        return candidate + timedelta(days=later[0] - today)
    return candidate + timedelta(days=7 - today + week_days[0])


def _advance_monthly(candidate: datetime, month_days: List[int]) -> datetime:
    later = [day for day in month_days if day > candidate.day]
    if later:
        days_in_month = calendar.monthrange(candidate.year, candidate.month)[1]
        if later[0] <= days_in_month:
            return candidate.replace(day=later[0])
    # Числа нет в этом месяце (например, 31 в феврале): не нормализуем,
    # а переходим на минимальный день следующего подходящего месяца.
    return _next_month_on_day(candidate, month_days[0])


def _matches_day_set(candidate: datetime, kind: Optional[RecurrenceKind],
                     week_days: List[int], month_days: List[int]) -> bool:
    if kind == RecurrenceKind.WEEKLY and week_days:
        return sunday_based_weekday(candidate) in week_days
    if kind == RecurrenceKind.MONTHLY and month_days:
        return candidate.day in month_days
    return True


def advance_once(candidate: datetime, kind: Optional[RecurrenceKind],
                 week_days: List[int], month_days: List[int]) -> datetime:
    """
    Один шаг вперёд по расписанию. Всегда сдвигает дату минимум на сутки.

    Пустой набор дней для WEEKLY/MONTHLY и неизвестный тип повторения
    деградируют до сдвига на один день.
    """
    if kind == RecurrenceKind.WEEKLY and week_days:
        return _advance_weekly(candidate, week_days)
    if kind == RecurrenceKind.MONTHLY and month_days:
        return _advance_monthly(candidate, month_days)
    return candidate + timedelta(days=1)


def next_occurrence(
        anchor_time: datetime,
        kind: Any,
        week_days: Optional[Iterable[Any]] = None,
        month_days: Optional[Iterable[Any]] = None,
        now: Optional[datetime] = None,
) -> datetime:
    """
    Возвращает ближайшее будущее срабатывание повторяющегося будильника.

    Args:
        anchor_time: Якорь расписания. Из него берутся только часы и минуты.
        kind: Тип повторения (RecurrenceKind, строка или старый код 0).
        week_days: Дни недели 0–6 (воскресенье = 0), для WEEKLY.
        month_days: Числа месяца 1–31, для MONTHLY.
        now: Текущий момент (по умолчанию datetime.now()).

    Returns:
        Момент строго позже `now` с временем суток якоря и нулевыми секундами.
        Для WEEKLY/MONTHLY с непустым набором дней — самый ранний подходящий день.
    """
    now = now or datetime.now()
    recurrence_kind = RecurrenceKind.parse(kind)
    weekly = parse_week_days(week_days) if recurrence_kind == RecurrenceKind.WEEKLY else []
    monthly = parse_month_days(month_days) if recurrence_kind == RecurrenceKind.MONTHLY else []

    candidate = _at_anchor_time(now, anchor_time)
    while candidate <= now or not _matches_day_set(candidate, recurrence_kind, weekly, monthly):
        candidate = _at_anchor_time(advance_once(candidate, recurrence_kind, weekly, monthly), anchor_time)
    return candidate

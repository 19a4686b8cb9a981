from datetime import datetime, timedelta

import pytest

from core.alarms.recurrence import (
    next_occurrence,
    parse_day_set,
    parse_month_days,
    parse_week_days,
    sunday_based_weekday,
)
from models.alarm_enums import RecurrenceKind

ANCHOR = datetime(2020, 1, 1, 8, 55, 37)
MONDAY_7AM = datetime(2026, 10, 19, 7, 0)


def _brute_force(now, anchor, matches):
    """Первый день (в пределах 3 месяцев) со временем якоря, позже now и подходящий под matches."""
    day = now.replace(hour=anchor.hour, minute=anchor.minute, second=0, microsecond=0)
    for _ in range(100):
        if day > now and matches(day):
            return day
        day += timedelta(days=1)
    raise AssertionError("no occurrence found")


def test_parse_day_set_drops_garbage_and_sorts():
    assert parse_day_set(["3", 1, "x", 1, None, 9, " 2 ", True, 4.0], 0, 6) == [1, 2, 3]


def test_parse_day_set_handles_non_lists():
    assert parse_day_set(None, 0, 6) == []
    assert parse_day_set("135", 1, 31) == []


def test_parse_month_and_week_ranges():
    assert parse_week_days([-1, 0, 6, 7]) == [0, 6]
    assert parse_month_days([0, 1, 31, 32]) == [1, 31]


def test_sunday_based_weekday():
    assert sunday_based_weekday(datetime(2026, 10, 18)) == 0  # воскресенье
    assert sunday_based_weekday(MONDAY_7AM) == 1
    assert sunday_based_weekday(datetime(2026, 10, 24)) == 6  # суббота


def test_daily_later_today():
    result = next_occurrence(ANCHOR, RecurrenceKind.DAILY, now=MONDAY_7AM)
    assert result == datetime(2026, 10, 19, 8, 55)


def test_daily_already_passed_today_moves_to_tomorrow():
    result = next_occurrence(ANCHOR, "Daily", now=datetime(2026, 10, 19, 9, 0))
    assert result == datetime(2026, 10, 20, 8, 55)


def test_exact_anchor_moment_is_not_reselected():
    now = datetime(2026, 10, 19, 8, 55)
    assert next_occurrence(ANCHOR, "Daily", now=now) == datetime(2026, 10, 20, 8, 55)


@pytest.mark.parametrize("now", [
    datetime(2026, 10, 19, 0, 0),
    datetime(2026, 10, 19, 8, 54, 59),
    datetime(2026, 10, 19, 8, 55, 0),
    datetime(2026, 10, 19, 23, 59, 59),
    datetime(2027, 2, 28, 12, 0),
    datetime(2028, 12, 31, 9, 0),
])
def test_daily_is_within_next_24_hours(now):
    result = next_occurrence(ANCHOR, RecurrenceKind.DAILY, now=now)
    assert now < result <= now + timedelta(hours=24, seconds=1)
    assert (result.hour, result.minute, result.second, result.microsecond) == (8, 55, 0, 0)


def test_catch_up_after_long_downtime_uses_current_date():
    # якорь пятилетней давности: дата не важна, важны часы и минуты
    result = next_occurrence(datetime(2021, 3, 3, 6, 30), "Daily", now=MONDAY_7AM)
    assert result == datetime(2026, 10, 20, 6, 30)


def test_weekly_today_is_in_set_and_time_not_passed():
    # понедельник = 1
    result = next_occurrence(ANCHOR, "Weekly", week_days=[1, 3], now=MONDAY_7AM)
    assert result == datetime(2026, 10, 19, 8, 55)


def test_weekly_next_day_in_same_week():
    result = next_occurrence(ANCHOR, "Weekly", week_days=[1, 3], now=datetime(2026, 10, 19, 9, 0))
    assert result == datetime(2026, 10, 21, 8, 55)


def test_weekly_wraps_to_next_week():
    result = next_occurrence(ANCHOR, "Weekly", week_days=[1], now=datetime(2026, 10, 19, 9, 0))
    assert result == datetime(2026, 10, 26, 8, 55)


def test_weekly_today_not_in_set():
    result = next_occurrence(ANCHOR, "Weekly", week_days=["0"], now=MONDAY_7AM)
    assert result == datetime(2026, 10, 25, 8, 55)


@pytest.mark.parametrize("week_days", [[0], [6], [1, 3, 5], [0, 6], [2, 4], list(range(7))])
@pytest.mark.parametrize("now", [
    MONDAY_7AM,
    datetime(2026, 10, 24, 23, 0),
    datetime(2026, 12, 31, 8, 55),
    datetime(2027, 2, 28, 10, 0),
])
def test_weekly_is_earliest_matching_instant(week_days, now):
    result = next_occurrence(ANCHOR, RecurrenceKind.WEEKLY, week_days=week_days, now=now)
    assert sunday_based_weekday(result) in week_days
    assert result == _brute_force(now, ANCHOR, lambda d: sunday_based_weekday(d) in week_days)


def test_legacy_kind_code_zero_means_weekly():
    now = datetime(2026, 10, 19, 9, 0)
    assert next_occurrence(ANCHOR, 0, week_days=[3], now=now) == \
        next_occurrence(ANCHOR, RecurrenceKind.WEEKLY, week_days=[3], now=now)
    assert next_occurrence(ANCHOR, "0", week_days=[3], now=now) == datetime(2026, 10, 21, 8, 55)


def test_portuguese_kind_names_are_accepted():
    now = datetime(2026, 10, 19, 9, 0)
    assert next_occurrence(ANCHOR, "semanalmente", week_days=[3], now=now) == datetime(2026, 10, 21, 8, 55)
    assert next_occurrence(ANCHOR, "diariamente", now=now) == datetime(2026, 10, 20, 8, 55)
    assert next_occurrence(ANCHOR, "mensalmente", month_days=[1], now=now) == datetime(2026, 11, 1, 8, 55)


def test_monthly_later_this_month():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[5, 20], now=MONDAY_7AM)
    assert result == datetime(2026, 10, 20, 8, 55)


def test_monthly_rolls_into_next_month():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[15], now=MONDAY_7AM)
    assert result == datetime(2026, 11, 15, 8, 55)


def test_monthly_rolls_over_year_end():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[1], now=datetime(2026, 12, 15, 12, 0))
    assert result == datetime(2027, 1, 1, 8, 55)


def test_monthly_31_in_february_lands_on_march_31():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[31], now=datetime(2027, 2, 10, 12, 0))
    assert result == datetime(2027, 3, 31, 8, 55)


def test_monthly_31_skips_thirty_day_month():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[31], now=datetime(2026, 10, 31, 9, 0))
    assert result == datetime(2026, 12, 31, 8, 55)


def test_monthly_30_after_january_skips_february():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[30], now=datetime(2027, 1, 31, 9, 0))
    assert result == datetime(2027, 3, 30, 8, 55)


def test_monthly_overflow_falls_back_to_smallest_day_next_month():
    result = next_occurrence(ANCHOR, "Monthly", month_days=[5, 30], now=datetime(2027, 2, 10, 9, 0))
    assert result == datetime(2027, 3, 5, 8, 55)


@pytest.mark.parametrize("month_days", [[1], [15], [28, 29], [29, 30, 31], [31], [1, 31]])
@pytest.mark.parametrize("now", [
    MONDAY_7AM,
    datetime(2027, 1, 31, 9, 0),
    datetime(2027, 2, 28, 8, 0),
    datetime(2028, 2, 28, 9, 0),  # високосный год
])
def test_monthly_is_earliest_matching_instant(month_days, now):
    result = next_occurrence(ANCHOR, RecurrenceKind.MONTHLY, month_days=month_days, now=now)
    assert result.day in month_days
    assert result == _brute_force(now, ANCHOR, lambda d: d.day in month_days)


@pytest.mark.parametrize("kind, week_days, month_days", [
    ("Weekly", [], None),
    ("Weekly", ["x", 9], None),
    ("Monthly", None, []),
    ("Monthly", None, ["abc", 0, 40]),
    ("Yearly", None, None),
    (None, None, None),
])
def test_degenerate_specs_advance_one_day(kind, week_days, month_days):
    now = datetime(2026, 10, 19, 9, 0)
    result = next_occurrence(ANCHOR, kind, week_days=week_days, month_days=month_days, now=now)
    assert result == datetime(2026, 10, 20, 8, 55)


def test_day_set_of_other_kind_is_ignored():
    # для Daily дни недели не учитываются
    result = next_occurrence(ANCHOR, "Daily", week_days=[3], month_days=[25], now=MONDAY_7AM)
    assert result == datetime(2026, 10, 19, 8, 55)

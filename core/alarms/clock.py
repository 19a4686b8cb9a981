"""Локальное «сейчас» сервера. Все даты в ядре — naive, в таймзоне TIMEZONE."""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from settings import settings


def server_timezone() -> Optional[ZoneInfo]:
    return ZoneInfo(settings.TIMEZONE) if settings.TIMEZONE else None


def local_now() -> datetime:
    tz = server_timezone()
    if tz is None:
        return datetime.now()
    return datetime.now(tz).replace(tzinfo=None)


def to_local_naive(moment: datetime) -> datetime:
    """Aware-дату переводит в таймзону сервера и отрезает tzinfo."""
    if moment.tzinfo is None:
        return moment
    tz = server_timezone()
    converted = moment.astimezone(tz) if tz is not None else moment.astimezone()
    return converted.replace(tzinfo=None)

from datetime import datetime, timedelta

import pytest

from core.alarms.lifecycle import AlarmLifecycleManager
from infrastructure.database.session import Database

# Понедельник
MONDAY_7AM = datetime(2026, 10, 19, 7, 0)


class FrozenClock:
    """Управляемое «сейчас» для тестов."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def db():
    database = Database("sqlite:///:memory:")
    database.create_schema()
    yield database
    database.dispose()


@pytest.fixture
def clock():
    return FrozenClock(MONDAY_7AM)


@pytest.fixture
def manager(db, clock):
    return AlarmLifecycleManager(db, clock=clock, stale_minutes=60, retention_days=30, history_limit=100)

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

"""Жизненный цикл будильников (бизнес-логика)."""

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from core.alarms.clock import local_now, to_local_naive
from core.alarms.exceptions import (
    AlarmConflictError,
    AlarmNotFoundError,
    AlarmValidationError,
    PersistenceError,
)
from core.alarms.recurrence import next_occurrence, parse_month_days, parse_week_days
from infrastructure.database.identifiers import normalize_identifier
from infrastructure.database.repositories import AlarmsRepository
from infrastructure.database.session import Database
from infrastructure.logging.logger import setup_logger
from models.alarm_enums import AlarmStatus, RecurrenceKind
from models.alarm_models import MAX_SNOOZE_MINUTES, Alarm, AlarmSpec
from settings import settings

logger = setup_logger("alarm_lifecycle")


class AlarmLifecycleManager:
    """
    Ведёт будильник по состояниям Active → (Snoozed) → Active/Fired.

    «Отложен» не хранится отдельным статусом: это ACTIVE-запись
    с заполненными original_message и schedule_anchor.
    Каждая операция — одно чтение и одна CAS-запись на запись.
    """

    def __init__(
        self,
        db: Database,
        clock: Callable[[], datetime] = local_now,
        stale_minutes: int = settings.STALE_ALARM_MINUTES,
        retention_days: int = settings.HISTORY_RETENTION_DAYS,
        history_limit: int = settings.HISTORY_LIMIT,
    ):
        """
        Args:
            db: Хранилище (подключение создаётся один раз при старте).
            clock: Источник текущего времени.
            stale_minutes: Разовый будильник, просроченный дольше, архивируется молча.
            retention_days: Сколько дней хранить историю.
            history_limit: Максимум записей в ответе истории.
        """
        self.db = db
        self.clock = clock
        self.stale_window = timedelta(minutes=stale_minutes)
        self.retention = timedelta(days=retention_days)
        self.history_limit = history_limit

        self._owner_locks: Dict[str, threading.Lock] = {}
        self._owner_locks_guard = threading.Lock()

    # --- helpers ---
    @contextmanager
    def _repository(self) -> Iterator[AlarmsRepository]:
        session = self.db.get_session()
        try:
            yield AlarmsRepository(session)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"[alarms] Ошибка хранилища: {e}", exc_info=True)
            raise PersistenceError("Alarm storage is unavailable", e) from e
        finally:
            session.close()

    def _acquire_owner_lock(self, owner_id: str) -> Optional[threading.Lock]:
        """Захватывает замок владельца без ожидания. None, если он уже занят."""
        with self._owner_locks_guard:
            lock = self._owner_locks.setdefault(owner_id, threading.Lock())
            if not lock.acquire(blocking=False):
                return None
            return lock

    def _release_owner_lock(self, owner_id: str, lock: threading.Lock) -> None:
        # Свободные замки в словаре не храним
        with self._owner_locks_guard:
            lock.release()
            if self._owner_locks.get(owner_id) is lock:
                del self._owner_locks[owner_id]

    @staticmethod
    def _owner(owner_id: Any) -> str:
        try:
            return normalize_identifier(owner_id)
        except ValueError as e:
            raise AlarmValidationError(f"Invalid owner id: {e}") from e

    @staticmethod
    def _load(repo: AlarmsRepository, alarm_id: Any, owner_id: str) -> Alarm:
        try:
            alarm = repo.find_one(alarm_id, owner_id)
        except ValueError:
            alarm = None
        if alarm is None:
            raise AlarmNotFoundError(str(alarm_id))
        return alarm

    def _build(self, spec: AlarmSpec, now: datetime) -> dict[str, Any]:
        """Проверяет и нормализует входные данные создания/редактирования."""
        if spec.base_time is None:
            raise AlarmValidationError("base_time is required")
        base_time = to_local_naive(spec.base_time)

        kind = None
        week_days: List[int] = []
        month_days: List[int] = []

        if spec.is_recurring:
            kind = RecurrenceKind.parse(spec.recurrence_kind)
            if kind is None:
                raise AlarmValidationError(
                    f"Unknown recurrence kind for recurring alarm: {spec.recurrence_kind!r}"
                )
            if kind == RecurrenceKind.WEEKLY:
                week_days = parse_week_days(spec.week_days)
                if not week_days:
                    raise AlarmValidationError("Weekly alarm needs at least one day of week (0-6)")
            elif kind == RecurrenceKind.MONTHLY:
                month_days = parse_month_days(spec.month_days)
                if not month_days:
                    raise AlarmValidationError("Monthly alarm needs at least one day of month (1-31)")
            fire_at = next_occurrence(base_time, kind, week_days, month_days, now=now)
        else:
            if base_time < now:
                raise AlarmValidationError("Alarm time is in the past")
            fire_at = base_time

        return {
            "fire_at": fire_at,
            "message": spec.message or "",
            "status": AlarmStatus.ACTIVE,
            "is_recurring": bool(spec.is_recurring),
            "recurrence_kind": kind,
            "week_days": week_days,
            "month_days": month_days,
            "original_message": None,
            "schedule_anchor": None,
        }

    @staticmethod
    def _resolve(alarm: Alarm, now: datetime) -> Alarm:
        """
        Разрешает срабатывание: повторяющийся переносится на следующий раз
        от якоря (а не от отложенного времени), разовый уходит в историю.
        """
        if alarm.original_message is not None:
            alarm.message = alarm.original_message

        if alarm.is_recurring:
            base_time = alarm.schedule_anchor or alarm.fire_at
            alarm.fire_at = next_occurrence(
                base_time, alarm.recurrence_kind, alarm.week_days, alarm.month_days, now=now
            )
            alarm.status = AlarmStatus.ACTIVE
        else:
            alarm.status = AlarmStatus.FIRED

        alarm.clear_snooze()
        return alarm

    # --- queries ---
    def get(self, alarm_id: Any, owner_id: Any) -> Alarm:
        owner = self._owner(owner_id)
        with self._repository() as repo:
            return self._load(repo, alarm_id, owner)

    def list_active(self, owner_id: Any) -> List[Alarm]:
        owner = self._owner(owner_id)
        with self._repository() as repo:
            return repo.find(owner, [AlarmStatus.ACTIVE])

    def list_history(self, owner_id: Any) -> List[Alarm]:
        owner = self._owner(owner_id)
        with self._repository() as repo:
            return repo.find(owner, [AlarmStatus.FIRED], descending=True, limit=self.history_limit)

    # --- commands ---
    def create(self, spec: AlarmSpec, owner_id: Any) -> Alarm:
        """
        Создаёт будильник.

        Разовый срабатывает ровно в base_time (не раньше текущего момента),
        повторяющийся — в ближайший подходящий день во время суток base_time.

        Raises:
            AlarmValidationError: Некорректное расписание или время в прошлом.
        """
        owner = self._owner(owner_id)
        fields = self._build(spec, self.clock())
        with self._repository() as repo:
            alarm = repo.upsert(Alarm(owner_id=owner, **fields))
        logger.info(f"[alarms] {owner}: создан {alarm.id}, fire_at={alarm.fire_at.isoformat()}")
        return alarm

    def edit(self, alarm_id: Any, spec: AlarmSpec, owner_id: Any) -> Alarm:
        """Редактирует будильник: те же проверки и расчёт, что при создании."""
        owner = self._owner(owner_id)
        fields = self._build(spec, self.clock())
        with self._repository() as repo:
            alarm = self._load(repo, alarm_id, owner)
            for name, value in fields.items():
                setattr(alarm, name, value)
            alarm = repo.upsert(alarm)
        logger.info(f"[alarms] {owner}: изменён {alarm.id}, fire_at={alarm.fire_at.isoformat()}")
        return alarm

    def delete(self, alarm_id: Any, owner_id: Any) -> None:
        owner = self._owner(owner_id)
        with self._repository() as repo:
            try:
                deleted = repo.delete(alarm_id, owner)
            except ValueError:
                deleted = 0
        if deleted == 0:
            raise AlarmNotFoundError(str(alarm_id))
        logger.info(f"[alarms] {owner}: удалён {alarm_id}")

    def clear_history(self, owner_id: Any) -> int:
        owner = self._owner(owner_id)
        with self._repository() as repo:
            deleted = repo.delete_many([AlarmStatus.FIRED], owner_id=owner)
        logger.info(f"[alarms] {owner}: очищена история, удалено {deleted}")
        return deleted

    def acknowledge(self, alarm_id: Any, owner_id: Any) -> Alarm:
        """
        Пользователь увидел будильник («Visto»).

        Returns:
            Будильник после обновления.

        Raises:
            AlarmNotFoundError: Будильник не найден у этого владельца.
            AlarmConflictError: Запись изменили параллельно.
        """
        owner = self._owner(owner_id)
        with self._repository() as repo:
            alarm = self._load(repo, alarm_id, owner)
            updated = repo.upsert(self._resolve(alarm.copy(), self.clock()))
        logger.info(
            f"[alarms] {owner}: подтверждён {updated.id}, "
            f"status={updated.status.value}, fire_at={updated.fire_at.isoformat()}"
        )
        return updated

    def trigger(self, alarm_id: Any, owner_id: Any) -> Alarm:
        """
        Будильник прозвенел («Tocar»): то же разрешение, что и acknowledge.

        Returns:
            Будильник в том виде, в каком он прозвенел (до переноса/архивации).
        """
        owner = self._owner(owner_id)
        with self._repository() as repo:
            alarm = self._load(repo, alarm_id, owner)
            repo.upsert(self._resolve(alarm.copy(), self.clock()))
        logger.info(f"[alarms] {owner}: прозвенел {alarm.id}")
        return alarm

    def snooze(self, alarm_id: Any, owner_id: Any, minutes: Any) -> Alarm:
        """
        Откладывает будильник на `minutes` минут от текущего момента.

        При первом откладывании запоминаются исходный текст и исходное время
        (якорь расписания); повторные откладывания их не перезаписывают.
        Флаг повторения не трогаем.

        Raises:
            AlarmValidationError: minutes не положительное целое или больше MAX_SNOOZE_MINUTES.
            AlarmNotFoundError: Будильник не найден у этого владельца.
        """
        if isinstance(minutes, bool):
            raise AlarmValidationError("minutes must be a positive integer")
        try:
            minutes = int(str(minutes).strip())
        except (TypeError, ValueError) as e:
            raise AlarmValidationError("minutes must be a positive integer") from e
        if minutes <= 0:
            raise AlarmValidationError("minutes must be a positive integer")
        if minutes > MAX_SNOOZE_MINUTES:
            raise AlarmValidationError(f"minutes must not exceed {MAX_SNOOZE_MINUTES}")

        owner = self._owner(owner_id)
        with self._repository() as repo:
            alarm = self._load(repo, alarm_id, owner)

            base_message = alarm.original_message if alarm.original_message is not None else alarm.message
            anchor = alarm.schedule_anchor if alarm.is_snoozed else alarm.fire_at

            alarm.fire_at = self.clock() + timedelta(minutes=minutes)
            alarm.status = AlarmStatus.ACTIVE
            alarm.message = f"(snoozed {minutes} min) {base_message}"
            alarm.original_message = base_message
            alarm.schedule_anchor = anchor
            alarm = repo.upsert(alarm)

        logger.info(f"[alarms] {owner}: {alarm.id} отложен на {minutes} мин до {alarm.fire_at.isoformat()}")
        return alarm

    def periodic_check(self, owner_id: Any, now: Optional[datetime] = None) -> List[Alarm]:
        """
        Проверка «что пора показать» для внешнего поллера.

        Повторяющиеся просроченные будильники показываются всегда (сколько бы
        ни были просрочены) и сразу переносятся на следующий раз. Разовые
        показываются, только если просрочены меньше чем на stale_window;
        более старые молча уходят в историю. Каждая запись обрабатывается
        за вызов ровно один раз.

        Returns:
            Будильники в том состоянии, в котором они стали «пора».

        Raises:
            AlarmConflictError: Проверка для этого владельца уже идёт.
        """
        owner = self._owner(owner_id)
        now = now or self.clock()

        lock = self._acquire_owner_lock(owner)
        if lock is None:
            raise AlarmConflictError(f"Periodic check already running for {owner}")

        try:
            reported: List[Alarm] = []
            seen = set()
            with self._repository() as repo:
                for alarm in repo.find(owner, [AlarmStatus.ACTIVE], due_before=now):
                    if alarm.id in seen:
                        continue
                    seen.add(alarm.id)

                    notify = alarm.is_recurring or (now - alarm.fire_at) < self.stale_window
                    try:
                        repo.upsert(self._resolve(alarm.copy(), now))
                    except AlarmConflictError:
                        logger.warning(f"[alarms] {owner}: {alarm.id} уже обработан параллельно, пропускаем")
                        continue

                    if notify:
                        reported.append(alarm)
                    else:
                        logger.info(f"[alarms] {owner}: {alarm.id} просрочен, архивирован без уведомления")

            logger.info(f"[alarms] {owner}: проверка, обработано {len(seen)}, к показу {len(reported)}")
            return reported
        finally:
            self._release_owner_lock(owner, lock)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Удаляет сработавшие будильники старше срока хранения (у всех владельцев)."""
        cutoff = (now or self.clock()) - self.retention
        with self._repository() as repo:
            deleted = repo.delete_many([AlarmStatus.FIRED], older_than=cutoff)
        logger.info(f"[alarms] Очистка истории: удалено {deleted} записей старше {cutoff.isoformat()}")
        return deleted

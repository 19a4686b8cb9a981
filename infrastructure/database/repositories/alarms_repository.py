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

"""Репозиторий для работы с будильниками пользователей."""

import uuid
from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from core.alarms.exceptions import AlarmConflictError
from core.alarms.recurrence import parse_month_days, parse_week_days
from infrastructure.database.identifiers import identifier_variants, normalize_identifier
from infrastructure.database.models import AlarmRecord
from infrastructure.logging.logger import setup_logger
from models.alarm_enums import AlarmStatus, RecurrenceKind
from models.alarm_models import Alarm

logger = setup_logger("alarms_repository")


def _status_values(statuses: Iterable[AlarmStatus]) -> List[str]:
    values: List[str] = []
    for status in statuses:
        values.extend(status.stored_values())
    return values


class AlarmsRepository:
    """
    Репозиторий для работы с будильниками.

    Наружу отдаёт доменные `Alarm`, статусы и id приводит к каноническому виду.
    Обновления — compare-and-swap по (id, version).
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def to_domain(record: AlarmRecord) -> Alarm:
        kind = RecurrenceKind.parse(record.recurrence_kind)
        return Alarm(
            id=normalize_identifier(record.id),
            owner_id=normalize_identifier(record.owner_id),
            fire_at=record.fire_at,
            message=record.message or "",
            status=AlarmStatus.from_value(record.status),
            is_recurring=bool(record.is_recurring),
            recurrence_kind=kind,
            week_days=parse_week_days(record.week_days) if kind == RecurrenceKind.WEEKLY else [],
            month_days=parse_month_days(record.month_days) if kind == RecurrenceKind.MONTHLY else [],
            original_message=record.original_message,
            schedule_anchor=record.schedule_anchor,
            version=record.version or 0,
        )

    @staticmethod
    def _columns(alarm: Alarm) -> dict[str, Any]:
        return {
            "owner_id": normalize_identifier(alarm.owner_id),
            "fire_at": alarm.fire_at,
            "message": alarm.message,
            "status": AlarmStatus.from_value(alarm.status).value,
            "is_recurring": alarm.is_recurring,
            "recurrence_kind": alarm.recurrence_kind.value if alarm.recurrence_kind else None,
            "week_days": list(alarm.week_days),
            "month_days": list(alarm.month_days),
            "original_message": alarm.original_message,
            "schedule_anchor": alarm.schedule_anchor,
        }

    def find(
            self,
            owner_id: Any,
            statuses: Iterable[AlarmStatus],
            descending: bool = False,
            limit: Optional[int] = None,
            due_before: Optional[datetime] = None,
    ) -> List[Alarm]:
        """
        Будильники владельца с заданными статусами.

        Args:
            owner_id: ID владельца в любом представлении.
            statuses: Статусы (легаси-коды учитываются автоматически).
            descending: Сортировка по fire_at по убыванию.
            limit: Максимум записей.
            due_before: Только будильники с fire_at <= due_before.
        """
        stmt = select(AlarmRecord).where(
            AlarmRecord.owner_id.in_(identifier_variants(owner_id)),
            AlarmRecord.status.in_(_status_values(statuses)),
        )
        if due_before is not None:
            stmt = stmt.where(AlarmRecord.fire_at <= due_before)
        order = AlarmRecord.fire_at.desc() if descending else AlarmRecord.fire_at.asc()
        stmt = stmt.order_by(order)
        if limit is not None:
            stmt = stmt.limit(limit)
        stmt = stmt.execution_options(populate_existing=True)

        return [self.to_domain(record) for record in self.session.scalars(stmt).all()]

    def find_one(self, alarm_id: Any, owner_id: Any) -> Optional[Alarm]:
        """Будильник по id, только если он принадлежит owner_id. Иначе None."""
        stmt = select(AlarmRecord).where(
            AlarmRecord.id.in_(identifier_variants(alarm_id)),
            AlarmRecord.owner_id.in_(identifier_variants(owner_id)),
        ).execution_options(populate_existing=True)
        record = self.session.scalars(stmt).first()
        return self.to_domain(record) if record else None

    def upsert(self, alarm: Alarm) -> Alarm:
        """
        Создаёт будильник (если id пустой) или обновляет его.

        Обновление проходит, только если в БД та же версия, что была прочитана.

        Raises:
            AlarmConflictError: Запись изменили или удалили параллельно.
        """
        columns = self._columns(alarm)

        if alarm.id is None:
            record = AlarmRecord(id=uuid.uuid4().hex, version=0, **columns)
            self.session.add(record)
            self.session.commit()
            logger.info(f"[alarms] Создан будильник {record.id} для {record.owner_id}")
            return self.to_domain(record)

        stmt = (
            update(AlarmRecord)
            .where(
                AlarmRecord.id.in_(identifier_variants(alarm.id)),
                AlarmRecord.owner_id.in_(identifier_variants(alarm.owner_id)),
                AlarmRecord.version == alarm.version,
            )
            .values(version=alarm.version + 1, **columns)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            self.session.rollback()
            raise AlarmConflictError(f"Alarm {alarm.id} was modified concurrently")
        self.session.commit()

        saved = alarm.copy()
        saved.owner_id = columns["owner_id"]
        saved.status = AlarmStatus(columns["status"])
        saved.version = alarm.version + 1
        return saved

    def delete(self, alarm_id: Any, owner_id: Any) -> int:
        """Удаляет будильник владельца. Возвращает число удалённых записей."""
        stmt = delete(AlarmRecord).where(
            AlarmRecord.id.in_(identifier_variants(alarm_id)),
            AlarmRecord.owner_id.in_(identifier_variants(owner_id)),
        ).execution_options(synchronize_session=False)
        deleted = self.session.execute(stmt).rowcount
        self.session.commit()
        return deleted

    def delete_many(
            self,
            statuses: Iterable[AlarmStatus],
            older_than: Optional[datetime] = None,
            owner_id: Any = None,
    ) -> int:
        """
        Массовое удаление по статусам.

        Args:
            statuses: Какие статусы удалять.
            older_than: Только записи с fire_at < older_than.
            owner_id: Только записи этого владельца (None — все владельцы).
        """
        stmt = delete(AlarmRecord).where(AlarmRecord.status.in_(_status_values(statuses)))
        if older_than is not None:
            stmt = stmt.where(AlarmRecord.fire_at < older_than)
        if owner_id is not None:
            stmt = stmt.where(AlarmRecord.owner_id.in_(identifier_variants(owner_id)))

        deleted = self.session.execute(stmt.execution_options(synchronize_session=False)).rowcount
        self.session.commit()
        return deleted

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

from fastapi import APIRouter, Depends, HTTPException, Response

from api.dependencies.runtime import get_alarm_manager, get_owner_id
from api.schemas.alarms import (
    AlarmCreatedResponse,
    AlarmItemResponse,
    AlarmListResponse,
    AlarmRequest,
    AlarmResponse,
    DeletedCountResponse,
    SnoozeRequest,
)
from core.alarms.exceptions import (
    AlarmConflictError,
    AlarmError,
    AlarmNotFoundError,
    AlarmValidationError,
    UnauthenticatedError,
)
from core.alarms.lifecycle import AlarmLifecycleManager
from infrastructure.logging.logger import setup_logger

logger = setup_logger("alarms")

router = APIRouter(prefix="/alarms", tags=["Alarms"])


def to_http_error(error: AlarmError) -> HTTPException:
    """Переводит доменную ошибку в HTTP-ответ. Чужие будильники = 404."""
    if isinstance(error, AlarmNotFoundError):
        return HTTPException(status_code=404, detail="Alarm not found")
    if isinstance(error, AlarmValidationError):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, UnauthenticatedError):
        return HTTPException(status_code=401, detail=error.message)
    if isinstance(error, AlarmConflictError):
        return HTTPException(status_code=409, detail=error.message)
    logger.error(f"[alarms] Ошибка хранилища: {error.message}")
    return HTTPException(status_code=500, detail="Internal server error")


def _list_response(alarms) -> AlarmListResponse:
    return AlarmListResponse(alarms=[AlarmResponse.from_alarm(a) for a in alarms])


@router.get("/active", response_model=AlarmListResponse)
def get_active_alarms(
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """
    Активные будильники пользователя, ближайшие первыми.

    Returns:
        Список будильников со статусом Active (включая отложенные).
    """
    try:
        alarms = manager.list_active(owner_id)
        logger.info(f"[alarms] {owner_id}: активных {len(alarms)}")
        return _list_response(alarms)
    except AlarmError as e:
        raise to_http_error(e)


@router.get("/history", response_model=AlarmListResponse)
def get_alarm_history(
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """История: сработавшие будильники, последние первыми (не больше HISTORY_LIMIT)."""
    try:
        return _list_response(manager.list_history(owner_id))
    except AlarmError as e:
        raise to_http_error(e)


@router.delete("/history", response_model=DeletedCountResponse)
def clear_alarm_history(
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """Удаляет всю историю сработавших будильников пользователя."""
    try:
        return DeletedCountResponse(deleted_count=manager.clear_history(owner_id))
    except AlarmError as e:
        raise to_http_error(e)


@router.post("/due", response_model=AlarmListResponse)
def check_due_alarms(
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """
    Периодическая проверка для клиента-поллера.

    Возвращает будильники, которые пора показать, и сразу переводит их дальше:
    повторяющиеся переносятся на следующий раз, разовые уходят в историю.
    Меняет состояние, поэтому POST: повторный запрос вернёт уже другой набор.
    Разовые, просроченные больше чем на STALE_ALARM_MINUTES, не возвращаются.

    Raises:
        HTTPException 409: Проверка для этого пользователя уже выполняется.
    """
    try:
        return _list_response(manager.periodic_check(owner_id))
    except AlarmError as e:
        raise to_http_error(e)


@router.post("/{alarm_id}/trigger", response_model=AlarmItemResponse)
def trigger_alarm(
        alarm_id: str,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """
    Будильник прозвенел на устройстве.

    Returns:
        Будильник в том виде, в каком он прозвенел (до переноса).
    """
    try:
        return AlarmItemResponse(alarm=AlarmResponse.from_alarm(manager.trigger(alarm_id, owner_id)))
    except AlarmError as e:
        raise to_http_error(e)


@router.post("/{alarm_id}/acknowledge", response_model=AlarmItemResponse)
def acknowledge_alarm(
        alarm_id: str,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """
    Пользователь увидел будильник.

    Повторяющийся переносится на следующий раз от исходного (не отложенного)
    времени, текст восстанавливается. Разовый уходит в историю.
    """
    try:
        return AlarmItemResponse(alarm=AlarmResponse.from_alarm(manager.acknowledge(alarm_id, owner_id)))
    except AlarmError as e:
        raise to_http_error(e)


@router.post("/{alarm_id}/snooze", response_model=AlarmItemResponse)
def snooze_alarm(
        alarm_id: str,
        req: SnoozeRequest,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """
    Откладывает будильник на `minutes` минут.

    Расписание повторяющегося будильника не сдвигается.
    """
    try:
        alarm = manager.snooze(alarm_id, owner_id, req.minutes)
        return AlarmItemResponse(alarm=AlarmResponse.from_alarm(alarm))
    except AlarmError as e:
        raise to_http_error(e)


@router.get("/{alarm_id}", response_model=AlarmItemResponse)
def get_alarm(
        alarm_id: str,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    try:
        return AlarmItemResponse(alarm=AlarmResponse.from_alarm(manager.get(alarm_id, owner_id)))
    except AlarmError as e:
        raise to_http_error(e)


@router.post("", status_code=201, response_model=AlarmCreatedResponse)
def create_alarm(
        req: AlarmRequest,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """
    Создаёт будильник.

    Raises:
        HTTPException 400: Время в прошлом или некорректное расписание.
    """
    try:
        alarm = manager.create(req.to_spec(), owner_id)
        return AlarmCreatedResponse(inserted_id=alarm.id, alarm=AlarmResponse.from_alarm(alarm))
    except AlarmError as e:
        raise to_http_error(e)


@router.put("/{alarm_id}", response_model=AlarmItemResponse)
def update_alarm(
        alarm_id: str,
        req: AlarmRequest,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    """Полностью заменяет настройки будильника; отложенность сбрасывается."""
    try:
        alarm = manager.edit(alarm_id, req.to_spec(), owner_id)
        return AlarmItemResponse(alarm=AlarmResponse.from_alarm(alarm))
    except AlarmError as e:
        raise to_http_error(e)


@router.delete("/{alarm_id}", status_code=204)
def delete_alarm(
        alarm_id: str,
        owner_id: str = Depends(get_owner_id),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
):
    try:
        manager.delete(alarm_id, owner_id)
    except AlarmError as e:
        raise to_http_error(e)
    return Response(status_code=204)

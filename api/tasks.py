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

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from api.alarms import to_http_error
from api.dependencies.runtime import get_alarm_manager
from core.alarms.exceptions import AlarmError
from core.alarms.lifecycle import AlarmLifecycleManager
from infrastructure.logging.logger import setup_logger
from settings import settings

logger = setup_logger("tasks")

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.get("/cleanup-old-history")
def cleanup_old_history(
        x_cron_secret: Optional[str] = Header(None),
        manager: AlarmLifecycleManager = Depends(get_alarm_manager),
) -> dict:
    """
    Cron-задача: удаляет сработавшие будильники старше HISTORY_RETENTION_DAYS.

    Требует заголовок `X-Cron-Secret`, совпадающий с CRON_SECRET.

    Returns:
        - message: Описание результата
        - deleted_count: Сколько записей удалено

    Raises:
        HTTPException 401: Секрет не передан, не совпал или не настроен.
    """
    expected = settings.CRON_SECRET
    if not expected or not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        logger.warning("[cleanup] Отклонён запрос с неверным X-Cron-Secret")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        deleted = manager.purge_expired()
    except AlarmError as e:
        raise to_http_error(e)

    return {"message": "Old alarm history cleaned up", "deleted_count": deleted}

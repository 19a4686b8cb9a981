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


"""Зависимости роутеров: всё берём из app.state, собранного при старте."""

from typing import Optional

from fastapi import Header, HTTPException, Request

from api.helpers import resolve_owner_id
from core.alarms.exceptions import UnauthenticatedError


def get_alarm_manager(request: Request):
    return request.app.state.alarm_manager


def get_owner_id(authorization: Optional[str] = Header(None)) -> str:
    try:
        return resolve_owner_id(authorization)
    except UnauthenticatedError as e:
        raise HTTPException(
            status_code=401,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

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

"""Исключения жизненного цикла будильников."""


class AlarmError(Exception):
    """Базовая ошибка домена будильников."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class UnauthenticatedError(AlarmError):
    """Нет токена или токен невалиден."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AlarmNotFoundError(AlarmError):
    """Будильник не найден среди будильников владельца."""

    def __init__(self, alarm_id: str):
        self.alarm_id = alarm_id
        super().__init__(f"Alarm {alarm_id} not found")


class AlarmValidationError(AlarmError):
    """Некорректные данные будильника; в БД ничего не записано."""


class PersistenceError(AlarmError):
    """Ошибка хранилища."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message)


class AlarmConflictError(PersistenceError):
    """Запись изменена параллельным запросом между чтением и записью."""

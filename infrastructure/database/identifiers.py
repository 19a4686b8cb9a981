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
Нормализация идентификаторов владельцев и будильников.

Исторически user id писался то строкой, то «нативным» ObjectId документного
хранилища (в выгрузках это `{"$oid": "..."}` или `ObjectId('...')`).
Пишем всегда каноническую строку, а при чтении ищем по всем известным
представлениям, чтобы старые записи не становились «невидимыми».
"""

import re
import uuid
from typing import Any, List, Mapping

_OBJECT_ID_RENDER = re.compile(r"""^ObjectId\(\s*['"]?([0-9a-fA-F]{24})['"]?\s*\)$""")
_OBJECT_ID_HEX = re.compile(r"^[0-9a-fA-F]{24}$")


def normalize_identifier(value: Any) -> str:
    """
    Приводит идентификатор к канонической строке.

    Поддерживает str, int, uuid.UUID, bytes, `{"$oid": ...}` и строку
    вида `ObjectId('...')`. 24-символьный hex ObjectId приводится к нижнему
    регистру.

    Raises:
        ValueError: Если идентификатор пустой или None.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Identifier is empty")

    if isinstance(value, Mapping):
        if "$oid" not in value:
            raise ValueError(f"Unsupported identifier mapping: {value!r}")
        return normalize_identifier(value["$oid"])

    if isinstance(value, uuid.UUID):
        return value.hex

    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8")

    text = str(value).strip()
    match = _OBJECT_ID_RENDER.match(text)
    if match:
        text = match.group(1)
    if _OBJECT_ID_HEX.match(text):
        text = text.lower()

    if not text:
        raise ValueError("Identifier is empty")
    return text


def identifier_variants(value: Any) -> List[str]:
    """Все строковые представления id, под которыми запись могла быть сохранена."""
    canonical = normalize_identifier(value)
    variants = [canonical]
    if _OBJECT_ID_HEX.match(canonical):
        variants += [
            canonical.upper(),
            f"ObjectId('{canonical}')",
            f'ObjectId("{canonical}")',
            f'{{"$oid": "{canonical}"}}',
        ]
    return variants

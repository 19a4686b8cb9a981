from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from core.alarms.exceptions import UnauthenticatedError
from infrastructure.database.identifiers import normalize_identifier
from infrastructure.logging.logger import setup_logger
from settings import settings

logger = setup_logger("auth")

# Порядок важен: старые токены клали id в "userId", часть в "id"
OWNER_ID_CLAIMS = ("userId", "id", "sub")


def create_access_token(owner_id: Any, ttl: Optional[timedelta] = None) -> str:
    """Выпускает access-токен для владельца (HS256, по умолчанию на 30 дней)."""
    expires_at = datetime.now(timezone.utc) + (ttl or timedelta(days=settings.ACCESS_TOKEN_TTL_DAYS))
    payload = {"userId": normalize_identifier(owner_id), "exp": expires_at}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Достаёт токен из заголовка `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def resolve_owner_id(authorization: Optional[str]) -> str:
    """
    Проверяет токен и возвращает канонический id владельца.

    Args:
        authorization: Значение заголовка Authorization.

    Returns:
        Идентификатор пользователя из claim userId / id / sub.

    Raises:
        UnauthenticatedError: Нет токена, подпись/срок невалидны или в токене нет id.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        logger.warning("[auth] Токен не найден в заголовке Authorization")
        raise UnauthenticatedError("Missing bearer token")

    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.warning(f"[auth] Не удалось проверить токен: {e}")
        raise UnauthenticatedError("Invalid token") from e

    for claim in OWNER_ID_CLAIMS:
        value = claims.get(claim)
        if value in (None, ""):
            continue
        try:
            return normalize_identifier(value)
        except ValueError:
            continue

    logger.error("[auth] В токене нет userId/id")
    raise UnauthenticatedError("Token has no user id")
